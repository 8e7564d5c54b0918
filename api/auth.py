"""
Bearer-token authentication for API views.

Tokens are HS256 JWTs issued by the portal's login flow and carry the user id
(`id`, falling back to `sub`) and `role`.
"""
import functools
import logging

import jwt
from django.conf import settings

from .constants import ROLE_ADMIN
from .http import api_error

logger = logging.getLogger("api")


class AuthenticationFailed(Exception):
    pass


def decode_bearer(request) -> dict:
    header = request.META.get("HTTP_AUTHORIZATION", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationFailed("No token, authorization denied")

    try:
        claims = jwt.decode(token.strip(), settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"[AUTH] Rejected token: {e}")
        raise AuthenticationFailed("Token is not valid")

    user_id = claims.get("id") or claims.get("sub")
    if not user_id:
        raise AuthenticationFailed("Token is not valid")
    return {"id": str(user_id), "role": claims.get("role")}


def require_auth(view):
    """Attach request.auth_user_id / request.auth_role or answer 401."""
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            claims = decode_bearer(request)
        except AuthenticationFailed as e:
            return api_error(str(e), 401)
        request.auth_user_id = claims["id"]
        request.auth_role = claims["role"]
        return view(request, *args, **kwargs)

    return wrapper


def require_admin(view):
    @require_auth
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if request.auth_role != ROLE_ADMIN:
            logger.warning(f"[AUTH] Admin access denied for user {request.auth_user_id}")
            return api_error("Admin access required", 403)
        return view(request, *args, **kwargs)

    return wrapper
