"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from tracker.models.base import Base, TimestampMixin, PrimaryKeyMixin
from tracker.models.organization import Organization
from tracker.models.user import User, UserRole
from tracker.models.project import Project, ProjectStatus
from tracker.models.ticket import Ticket, TicketStatus, TicketAttachment
from tracker.models.review import Review, ReviewComment, CommentAttachment

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Organization",
    "User",
    "UserRole",
    "Project",
    "ProjectStatus",
    "Ticket",
    "TicketStatus",
    "TicketAttachment",
    "Review",
    "ReviewComment",
    "CommentAttachment",
]
