"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from tracker.dao.base import BaseDAO
from tracker.dao.user import UserDAO
from tracker.dao.project import ProjectDAO
from tracker.dao.ticket import TicketDAO, TicketAttachmentDAO
from tracker.dao.review import ReviewDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "ProjectDAO",
    "TicketDAO",
    "TicketAttachmentDAO",
    "ReviewDAO",
]
