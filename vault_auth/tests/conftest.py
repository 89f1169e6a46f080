"""
Shared fixtures: in-memory stores and a fast password hasher.
"""

import pytest

from ..core.auth.hashing import PasswordHasher
from ..core.auth.service import AuthService
from ..core.auth.token import TokenCodec
from ..core.auth.token_store import InMemoryTokenStore
from ..core.database.credential_store import InMemoryCredentialStore
from ..core.users.service import UsersService

TEST_SECRET = "test-secret-key-for-testing-only-do-not-use-in-production"
REFRESH_TTL = 7 * 24 * 60 * 60


@pytest.fixture(scope="session")
def password_hasher():
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_codec():
    return TokenCodec(TEST_SECRET, access_token_expire_minutes=15)


@pytest.fixture
def credential_store():
    return InMemoryCredentialStore()


@pytest.fixture
def token_store():
    return InMemoryTokenStore()


@pytest.fixture
def auth_service(credential_store, password_hasher, token_codec, token_store):
    return AuthService(
        credential_store=credential_store,
        password_hasher=password_hasher,
        token_codec=token_codec,
        token_store=token_store,
        refresh_token_ttl=REFRESH_TTL,
    )


@pytest.fixture
def users_service(credential_store):
    return UsersService(credential_store)
