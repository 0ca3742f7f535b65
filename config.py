import os
from dotenv import load_dotenv
load_dotenv()


def _key_list(raw, fallback):
    keys = [k.strip() for k in (raw or "").split(",") if k.strip()]
    return keys or [fallback]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "SQLALCHEMY_DATABASE_URI", os.getenv("DATABASE_URL", "sqlite:///internhub.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # JSON API authenticated by bearer tokens, no form posts
    WTF_CSRF_ENABLED = False

    # Newest key first; every key verifies, only the first one signs
    JWT_SECRET_KEYS = _key_list(os.getenv("JWT_SECRET_KEYS"), SECRET_KEY)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", 3600))

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
    SIGNUP_ENABLED = os.getenv("SIGNUP_ENABLED") == "1"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
