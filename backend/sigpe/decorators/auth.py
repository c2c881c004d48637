from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from sigpe.services.policy import load_principal


def require_permissions(*codes: str, roles=None):
    """Authenticate, resolve the caller and pass it to the view as `principal`.

    codes: permission codes that must all be granted by the caller's role
    roles: optional iterable of role names; when given the caller must hold one of them
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            principal = load_principal()
            if roles is not None and principal.role not in roles:
                abort(403, description='Role not allowed')
            if not principal.allows(*codes):
                abort(403, description='Missing permission')
            kwargs['principal'] = principal
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_login(fn):
    """Any authenticated, non-suspended account."""
    return require_permissions()(fn)
