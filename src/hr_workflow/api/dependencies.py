"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_workflow.identity import Actor, Role, StaticIdentity
from hr_workflow.models import User
from hr_workflow.services.orchestrator import WorkflowOrchestrator


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the application."""
    return request.app.state.session_factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_current_actor(
    factory: SessionFactory,
    x_user_id: Annotated[str | None, Header()] = None,
) -> Actor | None:
    """Resolve the X-User-ID header to an actor; None when absent or unknown."""
    if not x_user_id:
        return None
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )
    async with factory() as session:
        user = await session.get(User, user_id)
    if user is None:
        return None
    return Actor(id=user.user_id, role=Role(user.role), name=user.name)


CurrentActor = Annotated[Actor | None, Depends(get_current_actor)]


def get_orchestrator(request: Request, factory: SessionFactory, actor: CurrentActor) -> WorkflowOrchestrator:
    """Orchestrator bound to the calling actor."""
    return WorkflowOrchestrator(
        factory,
        StaticIdentity(actor),
        dispatcher=getattr(request.app.state, "dispatcher", None),
    )


# Type aliases for cleaner dependency injection
Orchestrator = Annotated[WorkflowOrchestrator, Depends(get_orchestrator)]
