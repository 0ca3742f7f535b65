"""User accounts: creation, intern provisioning and login checks."""
from __future__ import annotations

import logging
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from errors import Conflict, Unauthorized, ValidationError
from extensions import db
from models import Intern, Role, User

logger = logging.getLogger(__name__)


class DuplicateEmail(Conflict):
    message = "A user with this email already exists"


class InvalidCredentials(Unauthorized):
    # Same message whether the email is unknown or the password is wrong
    message = "Invalid credentials"


def _hash_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 10))


def _build_user(email: str, password: str, role) -> User:
    try:
        user = User(email=email, role=Role.parse(role))
        user.set_password(password, rounds=_hash_rounds())
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return user


def _ensure_email_free(email: str):
    if db.session.query(User.id).filter_by(email=email).first():
        raise DuplicateEmail()


def create_user(email: str, password: str, role) -> User:
    _ensure_email_free(email)
    user = _build_user(email, password, role)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if db.session.query(User.id).filter_by(email=email).first():
            raise DuplicateEmail() from exc
        raise
    logger.info("Created %s user %s", user.role.value, user.email)
    return user


def create_intern_with_user(
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    referring_source: Optional[str] = None,
) -> Intern:
    """Create an intern-role user and its intern profile.

    Both rows are committed together; if either insert fails neither is kept.
    """
    _ensure_email_free(email)
    user = _build_user(email, password, Role.INTERN)
    intern = Intern(user=user, name=name, phone=phone, referring_source=referring_source)
    db.session.add_all([user, intern])
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if db.session.query(User.id).filter_by(email=email).first():
            raise DuplicateEmail() from exc
        raise
    except Exception:
        db.session.rollback()
        raise
    logger.info("Created intern %s (%s)", intern.name, user.email)
    return intern


def verify_credentials(email: str, password: str) -> User:
    user = db.session.query(User).filter_by(email=email).first()
    if user is None or not user.check_password(password):
        logger.warning("Failed login for %s", email)
        raise InvalidCredentials()
    return user
