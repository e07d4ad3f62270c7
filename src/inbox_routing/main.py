"""
Inbox Routing - Main Application
=================================

Conversation routing, supervisor takeover and SLA escalation service.

Modules:
- Conversations: thread reads and supervisor/admin patches
- Routing: takeover/release, team ↔ category mappings, round-robin
- SLA: due dates, status and escalation of breached deadlines

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, repository interfaces
- Infrastructure: Database, policy file watcher
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from inbox_routing.config import settings
from inbox_routing.core import ApplicationException
from inbox_routing.infrastructure.database import close_database, create_tables, init_database
from inbox_routing.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from inbox_routing.shared.infrastructure.logging import get_logger, setup_logging
from inbox_routing.sla.infrastructure import SLAPolicyManager

from inbox_routing.conversations.interfaces import threads_router
from inbox_routing.routing.interfaces import mappings_router, takeover_router
from inbox_routing.sla.interfaces import sla_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (and tables, in development)
    3. Load the SLA policy and watch it for changes

    SHUTDOWN:
    1. Stop the policy watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting inbox routing service", extra={
        "version": settings.app_version,
        "supervisor_takeover_enabled": settings.supervisor_takeover_enabled,
        "skill_routing_enabled": settings.skill_routing_enabled,
    })

    init_database()
    if settings.auto_create_tables:
        logger.info("Creating database tables")
        await create_tables()

    policy_manager = SLAPolicyManager()
    policy_manager.load(settings.sla_config_path)
    if settings.sla_watch_config:
        policy_manager.start_watching()
    app.state.sla_policy = policy_manager

    logger.info("Inbox routing service started")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down inbox routing service")
    policy_manager.stop_watching()
    await close_database()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Inbox Routing API",
        description="""
        ## Conversation routing, supervisor takeover and SLA escalation

        ### Threads
        - `GET /threads` - List conversations
        - `GET /threads/{id}` - Get a conversation
        - `POST /threads/{id}/update` - Patch status, priority, owner, inbox flags

        ### Supervisor takeover
        - `POST /threads/{id}/takeover` - Supervisor takes ownership
        - `POST /threads/{id}/release` - Restore the previous owner or round-robin

        ### Routing
        - `GET|POST /routing/team-categories` - Team ↔ category mappings

        ### SLA
        - `POST /sla/threads/{id}/recompute` - Recompute one conversation
        - `GET /sla/threads/{id}/escalations` - Escalations of a conversation
        - `POST /sla/recompute` - Sweep the workspace

        **SLA budgets (minutes, response / resolution):**
        low 60 / 1440, med 30 / 720, high 15 / 240, urgent 5 / 120.

        Every error is returned as `{"error": "<code>"}`.
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    app.add_middleware(CorrelationIDMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(threads_router)
    app.include_router(takeover_router)
    app.include_router(mappings_router)
    app.include_router(sla_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        policy = getattr(request.app.state, "sla_policy", None)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "sla_policy": "loaded" if policy is not None else "default",
                "supervisor_takeover": "enabled" if settings.supervisor_takeover_enabled else "disabled",
                "skill_routing": "enabled" if settings.skill_routing_enabled else "disabled",
            },
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inbox_routing.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info",
    )
