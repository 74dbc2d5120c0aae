"""Baraza API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.accounts.gateway import (
    AccountGateway,
    AccountServiceError,
    HttpAccountGateway,
    InMemoryAccountGateway,
)
from src.config import Settings, get_settings
from src.content.repository import CassandraContentRepository, InMemoryContentRepository
from src.content.router import router as content_router
from src.content.service import ContentStore
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.exceptions import ForumError
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import ForumRedis, build_event_sinks, build_lock_manager
from src.health.router import router as health_router
from src.moderation.aggregator import ReportAggregator
from src.moderation.repository import (
    CassandraModerationRepository,
    InMemoryModerationRepository,
)
from src.moderation.router import reports_router
from src.moderation.router import router as moderation_router
from src.moderation.service import ModerationEngine
from src.notifications.service import NotificationService
from src.polls.router import router as polls_router
from src.polls.service import PollEngine
from src.votes.repository import CassandraVoteRepository, InMemoryVoteRepository
from src.votes.router import router as votes_router
from src.votes.service import VoteLedger


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def build_account_gateway(settings: Settings) -> AccountGateway:
    """HTTP gateway when the account service is configured, in-memory otherwise."""
    if settings.account_service_configured:
        return HttpAccountGateway(
            base_url=settings.account_service_url,
            api_key=settings.account_service_api_key,
            timeout=settings.account_service_timeout_seconds,
        )
    logger.warning(
        "account_gateway_in_memory",
        message="No account service configured - suspensions are only recorded locally",
    )
    return InMemoryAccountGateway()


def build_services(
    app: FastAPI,
    settings: Settings,
    redis_client: Any = None,
    session: Any = None,
    accounts: AccountGateway | None = None,
) -> None:
    """Wire the forum services and put them on ``app.state``.

    Uses Cassandra repositories when a session is given, in-memory ones
    otherwise.
    """
    if session is not None:
        keyspace = settings.cassandra_keyspace
        content_repository = CassandraContentRepository(session, keyspace)
        vote_repository = CassandraVoteRepository(session, keyspace)
        moderation_repository = CassandraModerationRepository(session, keyspace)
    else:
        content_repository = InMemoryContentRepository()
        vote_repository = InMemoryVoteRepository()
        moderation_repository = InMemoryModerationRepository()

    locks = build_lock_manager(settings, redis_client)
    sinks = build_event_sinks(settings, redis_client)
    notifications = NotificationService(
        sinks, timeout=settings.notification_timeout_seconds
    )

    content_store = ContentStore(
        content_repository,
        locks,
        notifications,
        max_depth=settings.comment_max_depth,
        depth_policy=settings.comment_depth_policy,
    )
    aggregator = ReportAggregator(
        content_store,
        moderation_repository,
        locks,
        notifications,
        high_threshold=settings.severity_high_report_count,
        medium_threshold=settings.severity_medium_report_count,
    )

    app.state.lock_manager = locks
    app.state.notification_service = notifications
    app.state.content_store = content_store
    app.state.vote_ledger = VoteLedger(
        content_store, vote_repository, locks, notifications
    )
    app.state.poll_engine = PollEngine(content_store, locks, notifications)
    app.state.report_aggregator = aggregator
    app.state.account_gateway = accounts or build_account_gateway(settings)
    app.state.moderation_engine = ModerationEngine(
        content_store,
        moderation_repository,
        locks,
        app.state.account_gateway,
        notifications,
        queue_limit=settings.moderation_queue_limit,
    )
    logger.info(
        "forum_services_initialized",
        storage_backend="cassandra" if session is not None else "memory",
        redis_enabled=redis_client is not None,
        notification_sinks=[sink.name for sink in sinks],
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is non-critical: without it locks and events stay in-process
    redis_client = await ForumRedis.connect(settings)

    session = None
    if settings.storage_backend == "cassandra":
        session = await init_async_cassandra()
        app.state.cassandra_session = session
        logger.info("cassandra_initialized")

    build_services(app, settings, redis_client=redis_client, session=session)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app.state.notification_service.drain()
    await app.state.account_gateway.close()
    await ForumRedis.disconnect()
    if session is not None:
        await shutdown_async_cassandra()


def _error_body(
    kind: str,
    code: str,
    message: str,
    status_code: int,
    request_id: str | None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "error": True,
        "kind": kind,
        "code": code,
        "message": message,
        "status_code": status_code,
        "request_id": request_id,
        **extra,
    }


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # SECURITY: Always set debug=False to prevent Starlette's ServerErrorMiddleware
    # from exposing stack traces in responses. Our custom exception handlers will
    # log full details internally while returning safe error messages to users.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Baraza civic forum - engagement and moderation API",
        debug=False,  # Never expose stack traces in responses
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    # Helper to get request_id from request state or context
    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(ForumError)
    async def forum_error_handler(request: Request, exc: ForumError) -> ORJSONResponse:
        """Render domain errors with their kind and code."""
        request_id = _get_request_id_safe(request)

        log = (
            logger.error
            if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else logger.info
        )
        log(
            "forum_error",
            kind=exc.kind,
            code=exc.code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                exc.kind, exc.code, exc.message, exc.status_code, request_id
            ),
        )

    @app.exception_handler(AccountServiceError)
    async def account_service_error_handler(
        request: Request, exc: AccountServiceError
    ) -> ORJSONResponse:
        """The user-account service refused or could not be reached."""
        request_id = _get_request_id_safe(request)

        logger.error(
            "account_service_error",
            error=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=_error_body(
                "upstream_error",
                "account_service_unavailable",
                "The account service could not complete the request",
                status.HTTP_502_BAD_GATEWAY,
                request_id,
            ),
        )

    # Global exception handlers (security: never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        # Log the error with full details (for debugging)
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        # Return safe error message to user
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                "http_error",
                "http_error",
                str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                exc.status_code,
                request_id,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        # Log validation errors
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        # Return user-friendly validation errors (these are safe to expose)
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                "validation_error",
                "invalid_request",
                "Validation error",
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                request_id,
                details=[
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Only development responses carry the exception text.
        All details are logged internally for debugging.
        """
        request_id = _get_request_id_safe(request)

        # Log the full exception with stack trace (for internal debugging)
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        message = "An unexpected error occurred. Please try again later."
        if settings.is_development:
            message = f"{type(exc).__name__}: {exc}"
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                "internal_error",
                "internal_error",
                message,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                request_id,
            ),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(content_router)
    app.include_router(votes_router)
    app.include_router(polls_router)
    app.include_router(reports_router)
    app.include_router(moderation_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Baraza API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
