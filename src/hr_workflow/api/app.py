"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_workflow import __version__
from hr_workflow.api.routes import (
    dashboard_router,
    employees_router,
    health_router,
    notifications_router,
    projects_router,
    salaries_router,
    tasks_router,
)
from hr_workflow.database import create_schema, dispose_db, init_db
from hr_workflow.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    owns_engine = getattr(app.state, "session_factory", None) is None
    if owns_engine:
        engine, factory = init_db()
        await create_schema(engine)
        app.state.session_factory = factory
    yield
    # Shutdown
    if owns_engine:
        await dispose_db()


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing a session factory binds the app to an existing engine (tests);
    otherwise the global engine is created on startup.
    """
    app = FastAPI(
        title="HR Workflow API",
        description="Task and salary workflow engine for the HR portal",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(tasks_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")
    app.include_router(salaries_router, prefix="/api/v1")
    app.include_router(employees_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(dashboard_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
