"""
Authentication service implementing password login with rotating refresh tokens.
Handles user registration, login, token refresh, logout and identity lookup.
"""

import re
import secrets
from typing import TYPE_CHECKING, Optional
import logging

from fastapi.concurrency import run_in_threadpool

from ..errors import ConflictError, ForbiddenError, UnauthorizedError
from .hashing import PasswordHasher
from .models import PublicUser, TokenPair, UserRecord
from .token import TokenCodec
from .token_store import TokenStore

if TYPE_CHECKING:
    from ..database.credential_store import CredentialStore

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "User with this email or username already exists"
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
MISSING_REFRESH_TOKEN = "No refresh token provided"

# secrets.token_urlsafe(32) output
_REFRESH_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")


class AuthService:
    """
    Authentication service holding only collaborator handles.

    bcrypt work runs in the thread pool so it never stalls the event loop.
    """

    def __init__(
        self,
        credential_store: "CredentialStore",
        password_hasher: PasswordHasher,
        token_codec: TokenCodec,
        token_store: TokenStore,
        refresh_token_ttl: int,
    ):
        self.credential_store = credential_store
        self.password_hasher = password_hasher
        self.token_codec = token_codec
        self.token_store = token_store
        self.refresh_token_ttl = refresh_token_ttl

    async def register_user(self, email: str, username: str, password: str) -> PublicUser:
        """
        Register a new user.

        Args:
            email: Email address, unique across users
            username: Username, unique across users
            password: Plain text password

        Returns:
            Public view of the created user

        Raises:
            ConflictError: If the email or username is already taken
        """
        email = email.lower()
        existing_user = await self.credential_store.find_conflict(email=email, username=username)
        if existing_user:
            raise ConflictError(DUPLICATE_USER_MESSAGE)

        pwd_hash = await run_in_threadpool(self.password_hasher.hash_password, password)
        user = await self.credential_store.insert(email, username, pwd_hash)

        logger.info(f"User registered successfully: {user.id}")
        return user.to_public()

    async def login_user(self, email: str, password: str) -> TokenPair:
        """
        Authenticate user and return a new token pair.

        Raises:
            UnauthorizedError: If the email is unknown or the password is wrong
        """
        user = await self.credential_store.get_by_email(email.lower())

        if user is None:
            await run_in_threadpool(self.password_hasher.verify_dummy, password)
            logger.warning("Failed login attempt for unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        verified = await run_in_threadpool(self.password_hasher.verify_password, password, user.password_hash)
        if not verified:
            logger.warning(f"Failed login attempt for user: {user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        tokens = await self._issue_token_pair(user)
        logger.info(f"User logged in successfully: {user.id}")
        return tokens

    async def refresh_tokens(self, refresh_token: Optional[str]) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        The presented token is consumed atomically and is never valid again,
        whatever the outcome.

        Raises:
            UnauthorizedError: If the token is missing, malformed, unknown,
                already used, expired, or its user no longer exists
        """
        if not refresh_token:
            raise UnauthorizedError(MISSING_REFRESH_TOKEN)

        if not _REFRESH_TOKEN_PATTERN.match(refresh_token):
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user_id = await self.token_store.get_and_delete(refresh_token)
        if user_id is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = await self.credential_store.get_by_id(user_id)
        if user is None:
            logger.warning(f"Refresh token presented for missing user: {user_id}")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        tokens = await self._issue_token_pair(user)
        logger.info(f"Token refreshed for user: {user.id}")
        return tokens

    async def logout_user(self, refresh_token: Optional[str], user_id: str) -> None:
        """
        Revoke a refresh token owned by the caller.

        Raises:
            ForbiddenError: If the token belongs to a different user
        """
        if not refresh_token:
            return

        owner_id = await self.token_store.peek(refresh_token)
        if owner_id is not None and owner_id != user_id:
            logger.warning(f"User {user_id} attempted to revoke a token they do not own")
            raise ForbiddenError("Token does not belong to this user")

        await self.token_store.delete(refresh_token)
        logger.info(f"User logged out: {user_id}")

    async def get_user_by_id(self, user_id: str) -> Optional[PublicUser]:
        """Look up a user by id, without the password hash."""
        user = await self.credential_store.get_by_id(user_id)
        return user.to_public() if user else None

    async def _issue_token_pair(self, user: UserRecord) -> TokenPair:
        access_token = self.token_codec.sign({
            "sub": user.id,
            "email": user.email,
            "username": user.username,
        })

        refresh_token = secrets.token_urlsafe(32)
        await self.token_store.put(refresh_token, user.id, self.refresh_token_ttl)

        return TokenPair(access_token=access_token, refresh_token=refresh_token)
