"""Project service - project CRUD guarded by task ownership."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import NotFound, RecordInUse, ValidationFailed
from hr_workflow.models import Project, Task
from hr_workflow.models.base import utcnow

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def validate_project(name: str, description: str | None) -> None:
    if len(name.strip()) < NAME_MIN_LENGTH:
        raise ValidationFailed("Project name must be at least 2 characters")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationFailed("Project name cannot exceed 100 characters")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationFailed("Description cannot exceed 500 characters")


class ProjectService:
    """Service for projects. Callers are expected to be admins."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_project(self, name: str, description: str | None = None) -> Project:
        validate_project(name, description)
        project = Project(name=name, description=description, is_archived=False)
        self.session.add(project)
        await self.session.flush()
        return project

    async def update_project(self, project_id: UUID, name: str, description: str | None = None) -> Project:
        validate_project(name, description)
        project = await self._require_project(project_id)
        project.name = name
        project.description = description
        project.updated_at = utcnow()
        await self.session.flush()
        return project

    async def set_archived(self, project_id: UUID, is_archived: bool) -> Project:
        """Archive or unarchive a project."""
        project = await self._require_project(project_id)
        project.is_archived = is_archived
        project.updated_at = utcnow()
        await self.session.flush()
        return project

    async def count_tasks(self, project_id: UUID) -> int:
        return await self.session.scalar(
            select(func.count()).select_from(Task).where(Task.project_id == project_id)
        ) or 0

    async def delete_project(self, project_id: UUID) -> None:
        """Hard-delete a project that owns no tasks.

        Raises RecordInUse when tasks exist; such projects are archived instead.
        """
        await self._require_project(project_id)
        if await self.count_tasks(project_id) > 0:
            raise RecordInUse("Cannot delete project with existing tasks. Archive it instead.")

        await self.session.execute(
            delete(Project)
            .where(Project.project_id == project_id)
            .execution_options(synchronize_session=False)
        )
        logger.info("Project %s deleted", project_id)

    async def list_projects(
        self,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        show_archived: bool = False,
    ) -> tuple[list[tuple[Project, int]], int]:
        """Paginated projects with their task counts, newest first."""
        query = select(Project)
        if search:
            query = query.where(Project.name.ilike(f"%{escape_like(search)}%", escape="\\"))
        if not show_archived:
            query = query.where(Project.is_archived.is_(False))

        total = await self.session.scalar(select(func.count()).select_from(query.subquery())) or 0

        task_count = (
            select(func.count(Task.task_id))
            .where(Task.project_id == Project.project_id)
            .correlate(Project)
            .scalar_subquery()
        )
        result = await self.session.execute(
            query.add_columns(task_count)
            .order_by(Project.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()], total

    async def _require_project(self, project_id: UUID) -> Project:
        project = await self.session.get(Project, project_id)
        if project is None:
            raise NotFound("Project", project_id)
        return project
