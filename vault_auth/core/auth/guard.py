"""
Request-time access token check for protected routes.
"""

from typing import Optional
import logging

from fastapi import Request

from ..errors import UnauthorizedError
from .models import Identity
from .token import InvalidTokenError, TokenCodec

logger = logging.getLogger(__name__)


def authenticate(authorization_header: Optional[str], codec: TokenCodec) -> Identity:
    """
    Resolve the caller identity from an Authorization header.

    The header must use the Bearer scheme (case-insensitive). The signed
    claims are trusted as of their issuance; no store lookup is made.

    Raises:
        UnauthorizedError: If the header is missing, not Bearer, or the token is invalid or expired
    """
    if not authorization_header:
        raise UnauthorizedError("Not authenticated")

    scheme, _, token = authorization_header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Invalid or expired token")

    try:
        claims = codec.verify(token)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token")

    return Identity(id=claims.sub, email=claims.email, username=claims.username)


async def require_identity(request: Request) -> Identity:
    """FastAPI dependency: authenticate and attach identity to request.state."""
    identity = authenticate(request.headers.get("Authorization"), request.app.state.token_codec)
    request.state.identity = identity
    return identity
