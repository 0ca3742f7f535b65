"""Signed session tokens carrying the caller's identity and role."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import jwt
from flask import current_app
from flask_login import UserMixin

from errors import Unauthorized
from models import Role

logger = logging.getLogger(__name__)


class TokenExpired(Unauthorized):
    message = "Authentication token expired. Please log in again."


class TokenInvalid(Unauthorized):
    message = "Authentication failed. Invalid token."


@dataclass(frozen=True)
class Claims(UserMixin):
    id: int
    email: str
    role: Role
    expires_at: datetime

    def to_dict(self):
        return {"id": self.id, "email": self.email, "role": self.role.value}


def _signing_keys() -> Sequence[str]:
    keys = current_app.config.get("JWT_SECRET_KEYS") or []
    if not keys:
        raise RuntimeError("JWT_SECRET_KEYS is not configured")
    return keys


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def issue_token(user_id: int, email: str, role, now: Optional[datetime] = None) -> str:
    """Sign a token for the user with the newest configured key."""
    now = now or datetime.now(timezone.utc)
    ttl = int(current_app.config.get("TOKEN_TTL_SECONDS", 3600))
    payload = {
        "id": user_id,
        "email": email,
        "role": Role.parse(role).value,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, _signing_keys()[0], algorithm=_algorithm())


def _decode(token: str) -> dict:
    options = {"verify_exp": False, "verify_iat": False, "require": ["exp"]}
    for key in _signing_keys():
        try:
            return jwt.decode(token, key, algorithms=[_algorithm()], options=options)
        except jwt.InvalidSignatureError:
            continue
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected malformed token: %s", exc)
            raise TokenInvalid() from exc
    logger.info("Rejected token signed with an unknown key")
    raise TokenInvalid()


def verify_token(token: str, now: Optional[datetime] = None) -> Claims:
    payload = _decode(token)
    now = now or datetime.now(timezone.utc)
    try:
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        claims = Claims(
            id=int(payload["id"]),
            email=str(payload["email"]),
            role=Role.parse(payload["role"]),
            expires_at=expires_at,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalid() from exc
    if now > expires_at:
        raise TokenExpired()
    return claims
