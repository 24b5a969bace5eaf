"""
Project model.

WHAT: SQLAlchemy model for a design project inside an organization.

WHY: Projects group tickets. A ticket's organization is copied from its
project at creation time and neither ever changes afterwards.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from tracker.models.base import Base


class ProjectStatus(str, Enum):
    """
    Project lifecycle status.

    - ACTIVE: Tickets are being worked on
    - ON_HOLD: Paused
    - COMPLETED: All work delivered
    - ARCHIVED: Kept for reference only
    """

    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Project(Base):
    """
    Design project owned by an organization.

    Security: Org-scoped, org_id is immutable after creation.
    """

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False
    )
    created_by_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ProjectStatus] = mapped_column(
        SQLEnum(
            ProjectStatus,
            name="projectstatus",
            values_callable=lambda members: [m.value for m in members],
        ),
        default=ProjectStatus.ACTIVE,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_projects_org_id", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}', org_id={self.org_id})>"
