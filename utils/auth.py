# utils/auth.py
from functools import wraps
from flask import abort, current_app
from flask_login import current_user
from db.models.user import UserRole


def roles_required(*roles: UserRole):
    def deco(fn):
        @wraps(fn)
        def inner(*a, **kw):
            if current_app.config.get("LOGIN_DISABLED"):
                return fn(*a, **kw)
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.has_role(*roles):
                abort(403)
            return fn(*a, **kw)

        return inner

    return deco


def actor_id():
    """Id of the acting user, None when anonymous (tests, scripts)."""
    if current_user and current_user.is_authenticated:
        return current_user.id
    return None
