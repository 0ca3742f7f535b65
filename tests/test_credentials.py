import pytest
from sqlalchemy.exc import IntegrityError

from errors import ValidationError
from extensions import db
from models import Intern, Role, User
from services.credentials import (
    DuplicateEmail,
    InvalidCredentials,
    create_intern_with_user,
    create_user,
    verify_credentials,
)


def test_created_user_verifies_with_same_password(app_ctx):
    create_user("admin@uruti.com", "password123", Role.ADMIN)

    user = verify_credentials("admin@uruti.com", "password123")
    assert user.role is Role.ADMIN
    assert user.password_hash != "password123"
    assert user.password_hash.startswith("$2")


def test_hash_uses_configured_rounds(app_ctx):
    user = create_user("admin@uruti.com", "password123", "admin")
    assert user.password_hash.split("$")[2] == "04"


def test_wrong_password_is_rejected(app_ctx):
    create_user("admin@uruti.com", "password123", Role.ADMIN)
    with pytest.raises(InvalidCredentials):
        verify_credentials("admin@uruti.com", "password124")


def test_unknown_email_gets_the_same_error(app_ctx):
    create_user("admin@uruti.com", "password123", Role.ADMIN)
    with pytest.raises(InvalidCredentials) as unknown:
        verify_credentials("nobody@uruti.com", "password123")
    with pytest.raises(InvalidCredentials) as wrong:
        verify_credentials("admin@uruti.com", "nope")
    assert unknown.value.message == wrong.value.message
    assert unknown.value.status_code == 401


def test_duplicate_email_is_rejected(app_ctx):
    create_user("admin@uruti.com", "password123", Role.ADMIN)
    with pytest.raises(DuplicateEmail) as excinfo:
        create_user("admin@uruti.com", "other-password", Role.INTERN)
    assert excinfo.value.status_code == 409
    assert db.session.query(User).count() == 1


def test_email_match_is_case_sensitive(app_ctx):
    create_user("Admin@uruti.com", "password123", Role.ADMIN)
    create_user("admin@uruti.com", "password123", Role.INTERN)
    with pytest.raises(InvalidCredentials):
        verify_credentials("ADMIN@uruti.com", "password123")


def test_unknown_role_is_a_validation_error(app_ctx):
    with pytest.raises(ValidationError):
        create_user("boss@uruti.com", "password123", "superuser")


def test_intern_is_created_with_linked_user(app_ctx):
    intern = create_intern_with_user(
        name="John Smith",
        email="john@example.com",
        password="password123",
        phone="1234567890",
        referring_source="University Placement Office",
    )
    assert intern.user.role is Role.INTERN
    assert intern.user.email == "john@example.com"
    assert verify_credentials("john@example.com", "password123").intern.id == intern.id


def test_intern_creation_rolls_back_user_on_failure(app_ctx):
    # name is NOT NULL, so the intern insert fails after the user insert
    with pytest.raises(IntegrityError):
        create_intern_with_user(name=None, email="ghost@example.com", password="password123")

    assert db.session.query(User).filter_by(email="ghost@example.com").count() == 0
    assert db.session.query(Intern).count() == 0


def test_intern_with_taken_email_is_rejected(app_ctx):
    create_user("jane@x.com", "password123", Role.ADMIN)
    with pytest.raises(DuplicateEmail):
        create_intern_with_user(name="Jane", email="jane@x.com", password="password123")
    assert db.session.query(Intern).count() == 0
