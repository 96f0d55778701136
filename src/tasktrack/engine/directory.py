"""Member directory and project registry."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.db.repositories import MemberRepository, ProjectRepository
from tasktrack.errors import DuplicateKeyError, NotFoundError, ValidationError
from tasktrack.models import Member, Project

logger = logging.getLogger(__name__)


class MemberDirectory:
    """Plain CRUD over members. Deleting a member leaves task references dangling."""

    def __init__(self, session: AsyncSession):
        self.members = MemberRepository(session)

    async def create_member(
        self,
        name: str,
        role: str | None = None,
        email: str | None = None,
    ) -> Member:
        if not name or not name.strip():
            raise ValidationError("name is required", field="name")
        member = await self.members.create(
            name=name.strip(),
            role=(role or "").strip() or "member",
            email=(email or "").strip(),
        )
        logger.info(f"Member created: {member.member_id}")
        return member

    async def get_member(self, member_id: UUID) -> Member:
        member = await self.members.get(member_id)
        if not member:
            raise NotFoundError("Member", str(member_id))
        return member

    async def list_members(self) -> list[Member]:
        return await self.members.list()

    async def delete_member(self, member_id: UUID) -> None:
        if await self.members.delete(member_id):
            logger.info(f"Member deleted: {member_id}")

    async def name_lookup(self) -> dict[str, str]:
        """Map member id strings to names for display."""
        return {str(m.member_id): m.name for m in await self.members.list()}


class ProjectRegistry:
    """Projects keyed by a unique, upper-cased key."""

    def __init__(self, session: AsyncSession):
        self.projects = ProjectRepository(session)

    async def create_project(
        self,
        name: str,
        key: str,
        description: str | None = None,
    ) -> Project:
        if not name or not name.strip() or not key or not key.strip():
            raise ValidationError("Name and Key are required")

        normalized_key = key.strip().upper()
        if await self.projects.get_by_key(normalized_key):
            raise DuplicateKeyError(normalized_key)

        project = await self.projects.create(
            name=name.strip(),
            key=normalized_key,
            description=description,
        )
        logger.info(f"Project created: {project.key} ({project.project_id})")
        return project

    async def get_project(self, project_id: UUID) -> Project:
        project = await self.projects.get(project_id)
        if not project:
            raise NotFoundError("Project", str(project_id))
        return project

    async def list_projects(self) -> list[Project]:
        return await self.projects.list()
