"""
Ticket models for the design ticket tracker.

WHAT: SQLAlchemy models for tickets and their file attachments.

WHY: A ticket is the unit of design work:
1. Status on a free-form board (Open, InProgress, Review, Done)
2. Optional designer assignment
3. Ordered checklist (todos) stored inline
4. Binary attachments stored inline, excluded from list projections
5. Link to the designer's project in the host editor

HOW: Uses SQLAlchemy 2.0 with:
- A JSON column for the positionally addressed checklist
- A deferred LargeBinary column for attachment payloads
- Foreign keys to organizations, projects and users
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    LargeBinary,
    Enum as SQLEnum,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from tracker.models.base import Base


# ============================================================================
# Enums
# ============================================================================


class TicketStatus(str, Enum):
    """
    Ticket status values.

    WHAT: Column of the ticket board.

    WHY: No state is terminal. Which moves are legal is decided by
    StatusTransitionPolicy, not by the enum.
    """

    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    REVIEW = "Review"
    DONE = "Done"


def _enum_values(members) -> List[str]:
    return [member.value for member in members]


# ============================================================================
# Ticket Model
# ============================================================================


class Ticket(Base):
    """
    Design ticket.

    WHAT: Represents one piece of design work within a project.

    Invariants:
    - org_id and project_id never change after creation
    - updated_at is refreshed by every mutating operation

    Security: Org-scoped, designers only mutate tickets assigned to them.
    """

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False
    )
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=False
    )
    created_by_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    assigned_to_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    # Ticket details
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[TicketStatus] = mapped_column(
        SQLEnum(TicketStatus, name="ticketstatus", values_callable=_enum_values),
        default=TicketStatus.OPEN,
        nullable=False,
    )

    # Checklist
    # WHY: Ordered list of {"id", "text", "is_completed"} dicts. The list is
    # always replaced as a whole so SQLAlchemy sees the change.
    todos: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )

    # Link to the designer's document in the host editor
    express_project_link: Mapped[Optional[str]] = mapped_column(
        String(2048), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    # Relationships
    attachments: Mapped[List["TicketAttachment"]] = relationship(
        "TicketAttachment",
        back_populates="ticket",
        order_by="TicketAttachment.id",
    )

    __table_args__ = (
        Index("ix_tickets_org_id", "org_id"),
        Index("ix_tickets_project_id", "project_id"),
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_assigned_to", "assigned_to_user_id"),
        Index("ix_tickets_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, title='{self.title[:30]}', status={self.status.value})>"

    def touch(self) -> None:
        """Refresh updated_at after a mutation."""
        self.updated_at = datetime.utcnow()


# ============================================================================
# TicketAttachment Model
# ============================================================================


class TicketAttachment(Base):
    """
    File attached directly to a ticket.

    WHAT: Uploaded reference material (briefs, mood boards, exports).

    WHY: The payload is stored inline with the ticket but deferred, so list
    and detail queries never pull bytes. Reading `payload` without an
    explicit undefer raises instead of silently loading.
    """

    __tablename__ = "ticket_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=False
    )
    uploaded_by_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    # File details
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[bytes] = mapped_column(
        LargeBinary, nullable=False, deferred=True, deferred_raiseload=True
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    ticket: Mapped["Ticket"] = relationship("Ticket", back_populates="attachments")

    __table_args__ = (
        Index("ix_ticket_attachments_ticket_id", "ticket_id"),
    )

    def __repr__(self) -> str:
        return f"<TicketAttachment(id={self.id}, filename='{self.filename}')>"
