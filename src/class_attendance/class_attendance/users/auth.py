from __future__ import annotations

from functools import wraps

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import Principal
from .service import AuthService


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication token is missing")
    return token.strip()


def current_principal() -> Principal:
    return g.principal


def require_role(auth_service: AuthService, *roles: Role):
    """Resolve the bearer token and reject principals outside `roles`."""

    allowed = set(roles or Role)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = auth_service.verify_token(bearer_token())
            if principal.role not in allowed:
                raise AuthorizationError("You do not have permission to perform this action")
            g.principal = principal
            return view(*args, **kwargs)

        return wrapper

    return decorator
