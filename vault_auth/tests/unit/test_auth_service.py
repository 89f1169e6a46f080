"""
Unit tests for the authentication service.
Covers registration, login, refresh token rotation and logout.
"""

import asyncio
import time

import pytest

from ...core.auth.hashing import PasswordHasher
from ...core.auth.service import AuthService
from ...core.auth.token_store import InMemoryTokenStore
from ...core.database.credential_store import InMemoryCredentialStore
from ...core.errors import ConflictError, ForbiddenError, UnauthorizedError
from ..conftest import REFRESH_TTL

PASSWORD = "correct-horse-battery"


async def _register_and_login(service, email="alice@example.com", username="alice"):
    user = await service.register_user(email, username, PASSWORD)
    tokens = await service.login_user(email, PASSWORD)
    return user, tokens


class SlowCredentialStore(InMemoryCredentialStore):
    """Yields to the event loop on every lookup so concurrent calls interleave."""

    async def get_by_id(self, user_id):
        await asyncio.sleep(0.01)
        return await super().get_by_id(user_id)


@pytest.mark.asyncio
class TestRegister:

    async def test_register_returns_public_user(self, auth_service, credential_store):
        user = await auth_service.register_user("Alice@Example.com", "alice", PASSWORD)

        assert user.email == "alice@example.com"
        assert user.username == "alice"
        assert "password_hash" not in user.model_dump()

        stored = await credential_store.get_by_id(user.id)
        assert stored.password_hash != PASSWORD
        assert stored.password_hash.startswith("$2b$")

    @pytest.mark.parametrize("email,username", [
        ("alice@example.com", "someoneelse"),
        ("other@example.com", "alice"),
        ("ALICE@example.com", "third"),
    ])
    async def test_register_duplicate_conflicts(self, auth_service, credential_store, email, username):
        original = await auth_service.register_user("alice@example.com", "alice", PASSWORD)

        with pytest.raises(ConflictError):
            await auth_service.register_user(email, username, "another-password")

        stored = await credential_store.get_by_id(original.id)
        assert stored.email == "alice@example.com"
        assert stored.username == "alice"
        assert stored.updated_at == original.updated_at

    async def test_store_rejects_duplicate_insert(self, credential_store):
        """The store enforces uniqueness even when no pre-check ran."""
        await credential_store.insert("race@example.com", "racer1", "hash")

        with pytest.raises(ConflictError):
            await credential_store.insert("race@example.com", "racer2", "hash")
        with pytest.raises(ConflictError):
            await credential_store.insert("other@example.com", "racer1", "hash")

    async def test_concurrent_registrations_one_wins(self, auth_service, credential_store):
        results = await asyncio.gather(
            auth_service.register_user("race@example.com", "racer1", PASSWORD),
            auth_service.register_user("race@example.com", "racer2", PASSWORD),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert await credential_store.get_by_email("race@example.com") is not None


@pytest.mark.asyncio
class TestLogin:

    async def test_login_issues_verifiable_pair(self, auth_service, token_codec, token_store):
        user, tokens = await _register_and_login(auth_service)

        claims = token_codec.verify(tokens.access_token)
        assert claims.sub == user.id
        assert claims.email == user.email
        assert claims.username == user.username

        assert await token_store.peek(tokens.refresh_token) == user.id

    async def test_login_email_is_case_insensitive(self, auth_service):
        await auth_service.register_user("alice@example.com", "alice", PASSWORD)

        tokens = await auth_service.login_user("ALICE@EXAMPLE.COM", PASSWORD)
        assert tokens.access_token

    async def test_wrong_password_and_unknown_email_are_indistinguishable(self, auth_service):
        await auth_service.register_user("alice@example.com", "alice", PASSWORD)

        with pytest.raises(UnauthorizedError) as wrong_password:
            await auth_service.login_user("alice@example.com", "wrong-password")
        with pytest.raises(UnauthorizedError) as unknown_email:
            await auth_service.login_user("nobody@example.com", PASSWORD)

        assert type(wrong_password.value) is type(unknown_email.value)
        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"
        assert wrong_password.value.status_code == unknown_email.value.status_code == 401

    async def test_each_login_issues_new_refresh_token(self, auth_service):
        _, first = await _register_and_login(auth_service)
        second = await auth_service.login_user("alice@example.com", PASSWORD)

        assert first.refresh_token != second.refresh_token


@pytest.mark.asyncio
class TestRefresh:

    async def test_refresh_rotates_token(self, auth_service, token_codec, token_store):
        user, tokens = await _register_and_login(auth_service)

        rotated = await auth_service.refresh_tokens(tokens.refresh_token)

        assert rotated.refresh_token != tokens.refresh_token
        assert token_codec.verify(rotated.access_token).sub == user.id
        assert await token_store.peek(rotated.refresh_token) == user.id
        assert await token_store.peek(tokens.refresh_token) is None

    async def test_original_token_is_single_use(self, auth_service):
        _, tokens = await _register_and_login(auth_service)
        await auth_service.refresh_tokens(tokens.refresh_token)

        with pytest.raises(UnauthorizedError, match="Invalid or expired refresh token"):
            await auth_service.refresh_tokens(tokens.refresh_token)

    async def test_missing_token(self, auth_service):
        with pytest.raises(UnauthorizedError, match="No refresh token provided"):
            await auth_service.refresh_tokens(None)
        with pytest.raises(UnauthorizedError, match="No refresh token provided"):
            await auth_service.refresh_tokens("")

    @pytest.mark.parametrize("token", ["short", "x" * 44, "has spaces in it and is long enough to pass...", "../" * 15])
    async def test_malformed_token(self, auth_service, token):
        with pytest.raises(UnauthorizedError, match="Invalid or expired refresh token"):
            await auth_service.refresh_tokens(token)

    async def test_unknown_token(self, auth_service):
        with pytest.raises(UnauthorizedError, match="Invalid or expired refresh token"):
            await auth_service.refresh_tokens("A" * 43)

    async def test_deleted_user_invalidates_token(self, auth_service, credential_store, token_store):
        user, tokens = await _register_and_login(auth_service)
        credential_store.remove(user.id)

        with pytest.raises(UnauthorizedError):
            await auth_service.refresh_tokens(tokens.refresh_token)

        assert await token_store.peek(tokens.refresh_token) is None

    async def test_concurrent_refresh_has_exactly_one_winner(self, password_hasher, token_codec):
        credential_store = SlowCredentialStore()
        service = AuthService(
            credential_store=credential_store,
            password_hasher=password_hasher,
            token_codec=token_codec,
            token_store=InMemoryTokenStore(),
            refresh_token_ttl=REFRESH_TTL,
        )
        _, tokens = await _register_and_login(service)

        results = await asyncio.gather(
            service.refresh_tokens(tokens.refresh_token),
            service.refresh_tokens(tokens.refresh_token),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, UnauthorizedError)]
        assert len(successes) == 1
        assert len(failures) == 1


@pytest.mark.asyncio
class TestLogout:

    async def test_logout_revokes_own_token(self, auth_service, token_store):
        user, tokens = await _register_and_login(auth_service)

        await auth_service.logout_user(tokens.refresh_token, user.id)

        assert await token_store.peek(tokens.refresh_token) is None
        with pytest.raises(UnauthorizedError):
            await auth_service.refresh_tokens(tokens.refresh_token)

    async def test_logout_other_users_token_forbidden(self, auth_service, token_store):
        alice, alice_tokens = await _register_and_login(auth_service)
        bob, _ = await _register_and_login(auth_service, "bob@example.com", "bob")

        with pytest.raises(ForbiddenError):
            await auth_service.logout_user(alice_tokens.refresh_token, bob.id)

        assert await token_store.peek(alice_tokens.refresh_token) == alice.id
        rotated = await auth_service.refresh_tokens(alice_tokens.refresh_token)
        assert rotated.refresh_token

    async def test_logout_without_token_is_noop(self, auth_service):
        user, _ = await _register_and_login(auth_service)

        await auth_service.logout_user(None, user.id)

    async def test_logout_unknown_token_is_not_an_error(self, auth_service):
        user, tokens = await _register_and_login(auth_service)
        await auth_service.refresh_tokens(tokens.refresh_token)

        await auth_service.logout_user(tokens.refresh_token, user.id)


@pytest.mark.asyncio
class TestIdentify:

    async def test_get_user_by_id(self, auth_service):
        user = await auth_service.register_user("alice@example.com", "alice", PASSWORD)

        found = await auth_service.get_user_by_id(user.id)
        assert found == user
        assert not hasattr(found, "password_hash")

    async def test_get_unknown_user(self, auth_service):
        assert await auth_service.get_user_by_id("missing") is None


@pytest.mark.asyncio
class TestEventLoopResponsiveness:
    """bcrypt at production cost must not stall other requests."""

    async def _max_tick_gap(self, work):
        gaps = []
        done = asyncio.Event()

        async def ticker():
            last = time.perf_counter()
            while not done.is_set():
                await asyncio.sleep(0.001)
                now = time.perf_counter()
                gaps.append(now - last)
                last = now

        ticking = asyncio.create_task(ticker())
        try:
            await work
        finally:
            done.set()
            await ticking
        return max(gaps)

    async def test_hashing_runs_off_the_event_loop(self, token_codec):
        service = AuthService(
            credential_store=InMemoryCredentialStore(),
            password_hasher=PasswordHasher(rounds=12),
            token_codec=token_codec,
            token_store=InMemoryTokenStore(),
            refresh_token_ttl=REFRESH_TTL,
        )

        assert await self._max_tick_gap(
            service.register_user("alice@example.com", "alice", PASSWORD)
        ) < 0.05
        assert await self._max_tick_gap(service.login_user("alice@example.com", PASSWORD)) < 0.05

        async def unknown_email_login():
            with pytest.raises(UnauthorizedError):
                await service.login_user("nobody@example.com", PASSWORD)

        assert await self._max_tick_gap(unknown_email_login()) < 0.05
