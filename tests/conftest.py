import os
import pytest


@pytest.fixture(scope="session", autouse=True)
def _set_env():
    os.environ.setdefault("FLASK_DEBUG", "0")
    os.environ.setdefault("SECRET_KEY", "test-secret")
    os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite:///:memory:")
    yield


def _test_config():
    from config import Config

    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
        JWT_SECRET_KEYS = ["test-signing-key-0123456789abcdef0123"]
        TOKEN_TTL_SECONDS = 3600
        BCRYPT_ROUNDS = 4
        SIGNUP_ENABLED = False

    return TestConfig


@pytest.fixture()
def make_app():
    """Build an app without touching it, so tests can add routes first."""
    from extensions import db
    from app import create_app

    built = []

    def _make(**overrides):
        app = create_app(_test_config())
        app.config.update(overrides)
        with app.app_context():
            db.create_all()
        built.append(app)
        return app

    yield _make
    for app in built:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture()
def app(make_app):
    return make_app()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def admin_user(app):
    from services.credentials import create_user
    from models import Role

    password = "Password123!"
    with app.app_context():
        user = create_user("admin@uruti.com", password, Role.ADMIN)
        user_id = user.id
    return {"id": user_id, "email": "admin@uruti.com", "password": password}


@pytest.fixture()
def intern_user(app):
    from services.credentials import create_intern_with_user

    password = "Password123!"
    with app.app_context():
        intern = create_intern_with_user(
            name="Jane Doe",
            email="jane@x.com",
            password=password,
            phone="2345678901",
            referring_source="LinkedIn",
        )
        ids = {"id": intern.user_id, "intern_id": intern.id}
    return {**ids, "email": "jane@x.com", "password": password}


@pytest.fixture()
def other_intern(app):
    from services.credentials import create_intern_with_user

    with app.app_context():
        intern = create_intern_with_user(
            name="John Smith",
            email="john@x.com",
            password="Password123!",
        )
        return {"id": intern.user_id, "intern_id": intern.id, "email": "john@x.com", "password": "Password123!"}


def _login(client, user):
    response = client.post("/login", json={"email": user["email"], "password": user["password"]})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


@pytest.fixture()
def admin_headers(client, admin_user):
    return _login(client, admin_user)


@pytest.fixture()
def intern_headers(client, intern_user):
    return _login(client, intern_user)


@pytest.fixture()
def other_intern_headers(client, other_intern):
    return _login(client, other_intern)
