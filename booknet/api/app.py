"""
FastAPI application for BookNet.

The app factory wires storage, the auth pipeline and the resource
services into one container hung on `app.state.container`, installs the
authorization middleware in front of every route, and maps errors to the
shared JSON envelope.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booknet.api.admin import router as admin_router
from booknet.api.books import router as books_router
from booknet.api.errors import install_exception_handlers
from booknet.auth.activation import ActivationMailer, ActivationService
from booknet.auth.authenticator import Authenticator
from booknet.auth.jwt import TokenCodec
from booknet.auth.middleware import AuthorizationMiddleware, RequestAuthorizer
from booknet.auth.passwords import PasswordHasher
from booknet.auth.policies import AccessPolicyEvaluator
from booknet.auth.revocation import RevocationList
from booknet.auth.routes import router as auth_router
from booknet.auth.service import AuthService
from booknet.auth.users import UserStore
from booknet.config import Settings, get_settings
from booknet.config_loader import SeedLoader
from booknet.core.utils import Clock, utc_now
from booknet.integrations import email
from booknet.integrations.email import EmailService
from booknet.services.books import BookService
from booknet.services.users import UserAdminService
from booknet.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Container
# =============================================================================


class AppContainer:
    """Everything a request handler may need, built once per app."""

    def __init__(
        self,
        settings: Settings,
        storage: StorageProvider,
        clock: Clock = utc_now,
        mailer: ActivationMailer | None = None,
    ):
        self.settings = settings
        self.storage = storage

        # Credentials
        self.users = UserStore(storage.metadata)
        self.hasher = PasswordHasher(iterations=settings.password_hash_iterations)
        self.codec = TokenCodec.from_settings(settings, clock=clock)
        self.authenticator = Authenticator(self.users, self.hasher)
        self.revocations = RevocationList(storage.cache, clock=clock)

        # Authorization
        self.policies = AccessPolicyEvaluator()
        self.authorizer = RequestAuthorizer(
            codec=self.codec,
            users=self.users,
            revocations=self.revocations,
            exempt_paths=settings.auth_exempt_paths,
        )

        # Activation
        self.email = EmailService(settings)
        self.activation = ActivationService(
            storage.metadata,
            self.users,
            mailer or self.email,
            ttl=timedelta(minutes=settings.activation_token_expire_minutes),
            code_length=settings.activation_code_length,
            clock=clock,
        )

        # Services
        self.auth = AuthService(
            users=self.users,
            hasher=self.hasher,
            authenticator=self.authenticator,
            codec=self.codec,
            activation=self.activation,
            revocations=self.revocations,
        )
        self.books = BookService(storage.metadata, self.policies, clock=clock)
        self.admin = UserAdminService(self.users, self.policies, clock=clock)
        self.seeder = SeedLoader(self.users, self.hasher)


# =============================================================================
# Setup helpers
# =============================================================================


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed roles and bootstrap accounts, flush pending mail on shutdown."""
    container: AppContainer = app.state.container
    await container.seeder.load(container.settings.seed_file)

    logger.info(f"BookNet API starting in {container.settings.environment} mode")

    yield

    await email.drain()
    logger.info("BookNet API shutting down")


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
    clock: Clock = utc_now,
    mailer: ActivationMailer | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    container = AppContainer(
        settings=settings,
        storage=storage or create_local_storage(clock),
        clock=clock,
        mailer=mailer,
    )

    app = FastAPI(
        title="BookNet API",
        description="Social book lending: share, borrow and return books",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware runs last-added first: CORS must see requests before auth
    app.add_middleware(AuthorizationMiddleware, authorizer=container.authorizer)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Include routers
    app.include_router(auth_router)
    app.include_router(books_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "environment": settings.environment}

    return app


app = create_app()
