"""
User Data Access Object (DAO).

WHAT: Lookups of users for authentication and assignment checks.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.dao.base import BaseDAO
from tracker.models.user import User


class UserDAO(BaseDAO[User]):
    """Data Access Object for User model."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_member(self, user_id: int, org_id: int) -> Optional[User]:
        """
        Get a user only if they belong to the given organization.

        WHY: Tickets may only be assigned to members of the ticket's
        organization.
        """
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.org_id == org_id)
        )
        return result.scalar_one_or_none()
