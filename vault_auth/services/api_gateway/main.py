"""
Main FastAPI application entry point for the Vault auth service.
Wires the credential store, token store and auth services into the HTTP API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .error_handling import register_exception_handlers
from .health import router as health_router
from ...core.auth.hashing import PasswordHasher
from ...core.auth.routes import router as auth_router
from ...core.auth.service import AuthService
from ...core.auth.token import TokenCodec
from ...core.auth.token_store import InMemoryTokenStore, RedisTokenStore, TokenStore
from ...core.config import Settings
from ...core.database.connection import Database
from ...core.database.credential_store import CredentialStore, InMemoryCredentialStore, SqlCredentialStore
from ...core.users.routes import router as users_router
from ...core.users.service import UsersService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _build_credential_store(settings: Settings) -> CredentialStore:
    if settings.use_memory_store:
        logger.warning("Using in-memory credential store; users are lost on restart")
        return InMemoryCredentialStore()
    return SqlCredentialStore(Database(settings.database_url))


def _build_token_store(settings: Settings) -> TokenStore:
    if settings.use_memory_store:
        logger.warning("Using in-memory token store; sessions are lost on restart")
        return InMemoryTokenStore()
    return RedisTokenStore.from_url(settings.redis_url)


def create_app(
    settings: Optional[Settings] = None,
    credential_store: Optional[CredentialStore] = None,
    token_store: Optional[TokenStore] = None,
    password_hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """
    Build the application.

    Stores passed in are owned by the caller; stores built from settings are
    owned by the app and closed on shutdown.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Vault auth service...")
        owned = []

        creds, tokens = credential_store, token_store
        if creds is None:
            creds = _build_credential_store(settings)
            owned.append(creds)
        if tokens is None:
            tokens = _build_token_store(settings)
            owned.append(tokens)

        codec = TokenCodec(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_token_expire_minutes=settings.access_token_expire_minutes,
        )
        app.state.credential_store = creds
        app.state.token_store = tokens
        app.state.token_codec = codec
        app.state.auth_service = AuthService(
            credential_store=creds,
            password_hasher=password_hasher or PasswordHasher(rounds=settings.bcrypt_rounds),
            token_codec=codec,
            token_store=tokens,
            refresh_token_ttl=settings.refresh_token_ttl_seconds,
        )
        app.state.users_service = UsersService(creds)
        logger.info("Auth services initialized")

        try:
            yield
        finally:
            logger.info("Shutting down Vault auth service...")
            for resource in owned:
                await resource.close()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title="Vault Auth",
        description="Password authentication with rotating refresh tokens",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth_router)
    api_router.include_router(users_router)
    app.include_router(api_router)
    app.include_router(health_router)

    return app


if __name__ == "__main__":
    # Development server
    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
