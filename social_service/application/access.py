"""
Access policy - resolves a bearer credential to an identity claim
"""
from typing import Optional
from uuid import UUID

from jose import JWTError

from ..domain.exceptions import UnauthenticatedError
from ..domain.models import Identity
from ..infrastructure.auth import decode_token


def resolve_identity(token: Optional[str], optional: bool = False) -> Optional[Identity]:
    """
    Resolve a bearer token into the identity it asserts

    A missing token is only acceptable on optional routes, where it resolves to
    None. A token that is present but invalid or expired is always rejected.

    Raises:
        UnauthenticatedError: If the token is required and missing, or invalid
    """
    if not token:
        if optional:
            return None
        raise UnauthenticatedError()

    try:
        payload = decode_token(token)
        user_id = UUID(payload["sub"])
        username = payload["username"]
    except (JWTError, KeyError, TypeError, ValueError):
        raise UnauthenticatedError("Invalid token")

    if payload.get("type") != "access":
        raise UnauthenticatedError("Invalid token")

    return Identity(id=user_id, username=username)
