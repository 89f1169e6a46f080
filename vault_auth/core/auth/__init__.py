"""
Authentication module for Vault.
Provides password hashing, access token signing, refresh token storage and
the authentication service.
"""

from .hashing import PasswordHasher
from .token import TokenCodec, InvalidTokenError
from .token_store import TokenStore, RedisTokenStore, InMemoryTokenStore
from .service import AuthService
from .models import Identity, PublicUser, TokenPair, TokenClaims, UserRecord

__all__ = [
    "PasswordHasher",
    "TokenCodec",
    "InvalidTokenError",
    "TokenStore",
    "RedisTokenStore",
    "InMemoryTokenStore",
    "AuthService",
    "Identity",
    "PublicUser",
    "TokenPair",
    "TokenClaims",
    "UserRecord",
]
