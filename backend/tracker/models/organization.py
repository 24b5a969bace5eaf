"""
Organization model.

WHY: Organizations are the tenant boundary. Every project, ticket and
review belongs to exactly one, and every scoped lookup compares against it.
"""

from sqlalchemy import Column, Integer, String

from tracker.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant.

    Each organization has:
    - A name and an owning user
    - A unique invite code used by the membership service
    - An optional email domain for automatic membership
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)

    # WHY: Plain integer, not a foreign key, users.org_id already points
    # the other way and the cycle buys nothing.
    owner_user_id = Column(Integer, nullable=False)

    invite_code = Column(String(64), unique=True, nullable=False)

    # e.g. "example.com" to auto-add users with matching email
    domain = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
