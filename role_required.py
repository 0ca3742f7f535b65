import logging
from functools import wraps
from flask import request
from flask_login import current_user
from errors import Forbidden, InternalError
from models import Role

logger = logging.getLogger(__name__)

def role_required(*roles):
    # Role.parse rejects unknown names when the route module is imported
    allowed = frozenset(Role.parse(r) for r in roles)
    if not allowed:
        raise ValueError("role_required needs at least one role")

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            # login_required must run first
            if not current_user.is_authenticated:
                logger.error(
                    "Authorization check reached without an authenticated caller on %s",
                    request.endpoint,
                )
                raise InternalError()
            try:
                role = Role.parse(current_user.role)
            except ValueError:
                raise Forbidden()
            if role not in allowed:
                raise Forbidden()
            return fn(*args, **kwargs)
        return wrapper
    return deco
