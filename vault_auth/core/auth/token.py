"""
JWT access token management.
Signs and verifies short-lived, self-contained access tokens.
"""

import time
from datetime import timedelta
from typing import Any, Dict, Optional
from jose import jwt, JWTError
import logging

from .models import TokenClaims

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


class InvalidTokenError(Exception):
    """Token is malformed, tampered with, or expired."""
    pass


class TokenCodec:
    """Stateless signer/verifier for access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS512",
        access_token_expire_minutes: int = 15,
    ):
        if not secret_key:
            raise ValueError("Secret key is required")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire = timedelta(minutes=access_token_expire_minutes)

    def sign(self, claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed access token.

        Args:
            claims: Payload to include (must contain 'sub')
            expires_delta: Lifetime override, defaults to the access TTL

        Returns:
            Encoded JWT string

        Raises:
            ValueError: If 'sub' is missing
        """
        if not claims.get("sub"):
            raise ValueError("Token claims must include 'sub' (subject)")

        issued_at = int(time.time())
        lifetime = expires_delta if expires_delta is not None else self.access_token_expire

        to_encode = dict(claims)
        to_encode.update({
            "iat": issued_at,
            "exp": issued_at + int(lifetime.total_seconds()),
            "type": ACCESS_TOKEN_TYPE,
        })

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry and return the claims.

        Raises:
            InvalidTokenError: On bad signature, malformed token, wrong type,
                missing claims, or when the current time is at or past 'exp'
        """
        if not token:
            raise InvalidTokenError("Token is empty")

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            raise InvalidTokenError(str(e)) from e

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError("Unexpected token type")

        exp = payload.get("exp")
        if not isinstance(exp, int) or time.time() >= exp:
            raise InvalidTokenError("Token has expired")

        try:
            return TokenClaims(
                sub=payload["sub"],
                email=payload["email"],
                username=payload["username"],
                iat=payload["iat"],
                exp=exp,
            )
        except (KeyError, ValueError) as e:
            raise InvalidTokenError("Token is missing required claims") from e
