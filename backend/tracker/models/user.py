"""
User model.

WHY: Users are the principals acting on tickets. Their role decides which
actions they may take and org_id decides which tickets they can see at all.
Credentials live with the external auth service, not here.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Boolean

from tracker.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: Roles are flat. No role implies another role's permissions;
    see tracker.core.permissions for the per-action table.
    """

    ADMIN = "ADMIN"  # Organization owner / administrator
    MANAGER = "MANAGER"  # Creates and curates tickets
    DESIGNER = "DESIGNER"  # Works on tickets assigned to them


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing members of the host application.

    WHY: A user belongs to at most one organization at a time. A user
    without an organization is valid (just signed up, not yet invited)
    and can see nothing.
    """

    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(255), nullable=False)

    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.DESIGNER)

    # Multi-tenancy
    # WHY: Nullable, membership bookkeeping is handled by the organization service
    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
