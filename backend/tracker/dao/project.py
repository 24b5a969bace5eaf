"""
Project Data Access Object (DAO).

WHAT: Database operations for the Project model.

HOW: Extends BaseDAO with organization-scoped listing.
"""

from typing import List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.dao.base import BaseDAO
from tracker.models.project import Project, ProjectStatus


class ProjectDAO(BaseDAO[Project]):
    """Data Access Object for Project model."""

    def __init__(self, session: AsyncSession):
        """
        Initialize ProjectDAO.

        Args:
            session: Async database session
        """
        super().__init__(Project, session)

    async def list_for_org(
        self,
        org_id: int,
        status: Optional[ProjectStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Project], int]:
        """
        List projects of an organization, newest first.

        Args:
            org_id: Organization ID
            status: Optional status filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (projects list, total count)
        """
        base_query = select(Project).where(Project.org_id == org_id)
        if status is not None:
            base_query = base_query.where(Project.status == status)

        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            base_query.order_by(Project.created_at.desc(), Project.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total
