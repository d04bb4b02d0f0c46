from functools import wraps

from flask import g, jsonify

from models import db
from models.user import User
from security.session import get_session_from_request


def load_current_user():
    """Resolve the bearer token into ``g.user`` / ``g.session`` (both None when anonymous)."""
    g.user = None
    g.session = None

    sess = get_session_from_request()
    if sess is None:
        return
    user = db.session.get(User, sess.user_id)
    if user is None:
        return
    g.session = sess
    g.user = user


def has_role(user, *role_names: str) -> bool:
    return user is not None and any(r.name in role_names for r in user.roles)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper


def require_roles(*role_names: str):
    """``@require_roles("ADMIN")``: 401 when anonymous, 403 without one of the roles."""
    def decorator(fn):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if not has_role(g.user, *role_names):
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
