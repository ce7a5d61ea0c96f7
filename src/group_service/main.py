"""Group service FastAPI application factory.

Usage:
    # Local development (in-memory platform unless Telegram is configured)
    from group_service import create_app, GroupServiceSettings
    app = create_app(GroupServiceSettings())

    # Production
    app = create_app(GroupServiceSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, platform=fake_platform, enricher=enricher)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .observability.logging import configure_logging, get_logger
from .observability.middleware import RequestIdMiddleware
from .profiles.enricher import ProfileEnricher
from .protocols import MessagingPlatform
from .provisioning import BackgroundTaskRegistry, GroupProvisioningService
from .routes.groups import create_groups_router
from .settings import GroupServiceSettings
from .telegram.session import FacilitatorSession

logger = get_logger(__name__)

SERVICE_NAME = "renty-mtproto-service"


@dataclass(frozen=True)
class AppDependencies:
    """Injected collaborators, stored on ``app.state.deps``."""

    platform: MessagingPlatform
    service: GroupProvisioningService
    enricher: ProfileEnricher
    tasks: BackgroundTaskRegistry
    session: FacilitatorSession | None = None

    @property
    def client_ready(self) -> bool:
        if self.session is None:
            return True
        return self.session.is_ready


def _build_platform(
    settings: GroupServiceSettings,
) -> tuple[MessagingPlatform, FacilitatorSession | None]:
    if settings.telegram_configured:
        from .telegram.platform import TelegramPlatform

        session = FacilitatorSession.from_settings(settings)
        return TelegramPlatform(session), session

    if not settings.is_local:
        raise ValueError(
            f"Non-local environment ({settings.environment}) requires Telegram credentials"
        )

    from .inmemory import InMemoryMessagingPlatform

    logger.warning("telegram_not_configured_using_inmemory_platform")
    return InMemoryMessagingPlatform(), None


def create_app(
    settings: GroupServiceSettings | None = None,
    *,
    platform: MessagingPlatform | None = None,
    session: FacilitatorSession | None = None,
    enricher: ProfileEnricher | None = None,
) -> FastAPI:
    """Create the configured ASGI application.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = GroupServiceSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Group service settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging()

    if platform is None:
        platform, built_session = _build_platform(settings)
        session = session or built_session

    enricher = enricher or ProfileEnricher.from_settings(settings)
    tasks = BackgroundTaskRegistry()
    service = GroupProvisioningService.from_settings(
        platform, settings, enricher=enricher, tasks=tasks,
    )
    deps = AppDependencies(
        platform=platform,
        service=service,
        enricher=enricher,
        tasks=tasks,
        session=session,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("group_service_startup", environment=settings.environment)
        connect_task = None
        if session is not None:
            # Serve immediately; the first request retries if this fails.
            connect_task = asyncio.create_task(_connect_in_background(session))
        yield
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
        tasks.abandon()
        if session is not None:
            await session.disconnect()
        await enricher.aclose()
        logger.info("group_service_shutdown")

    app = FastAPI(
        title="Renty Group Service",
        description="Creates listing group chats on Telegram and runs onboarding",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    @app.get("/health")
    async def health():
        return {"status": "ok", "clientReady": deps.client_ready}

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "clientReady": deps.client_ready,
            "endpoints": {
                "health": "/health",
                "createGroup": "/create-group",
            },
        }

    app.include_router(create_groups_router())
    return app


async def _connect_in_background(session: FacilitatorSession) -> None:
    try:
        await session.ensure_ready()
    except Exception as exc:
        logger.warning(
            "telegram_startup_connect_failed",
            error_type=type(exc).__name__,
            error=str(exc),
        )


# For uvicorn, use --factory:
#   uvicorn group_service.main:create_app --factory
