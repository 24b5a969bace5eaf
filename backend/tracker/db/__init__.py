"""Database package"""

from tracker.db.session import AsyncSessionLocal, engine, get_db
from tracker.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
