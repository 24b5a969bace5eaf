"""
Pydantic schemas for ticket endpoints.

WHAT: Request/response schemas for tickets, checklists and attachments.

WHY: Schemas define the API contract:
1. Validate incoming request data (status values, lengths)
2. Reject fields that may never change (org_id, project_id on update)
3. Expose attachment metadata only; payloads have their own endpoint

HOW: Uses Pydantic v2 with from_attributes for SQLAlchemy integration.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from tracker.models.ticket import TicketStatus


# ============================================================================
# Checklist Schemas
# ============================================================================


class TodoItem(BaseModel):
    """One checklist item as stored on the ticket."""

    id: str = Field(..., description="Stable item ID")
    text: str = Field(..., description="Item text")
    is_completed: bool = Field(False, description="Whether the item is done")


class TodoCreate(BaseModel):
    """Request to append one checklist item."""

    text: str = Field(..., max_length=500, description="Item text")


class TodoBulkCreate(BaseModel):
    """
    Request to append several checklist items.

    WHY: Accepting suggestions adds them in one round trip.
    """

    texts: List[str] = Field(..., min_length=1, max_length=50, description="Item texts")


class TodoSuggestionResponse(BaseModel):
    """Suggested checklist items, not yet stored."""

    suggestions: List[str] = Field(..., description="Suggested item texts")


# ============================================================================
# Attachment Schemas
# ============================================================================


class TicketAttachmentResponse(BaseModel):
    """
    Attachment metadata.

    WHY: Never includes the payload. Download it from
    GET /tickets/{ticket_id}/files/{id}.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Attachment ID")
    ticket_id: int = Field(..., description="Parent ticket ID")
    filename: str = Field(..., description="Original filename")
    content_type: str = Field(..., description="MIME type")
    size_bytes: int = Field(..., description="File size in bytes")
    uploaded_at: datetime = Field(..., description="Upload timestamp")
    uploaded_by_user_id: int = Field(..., description="User who uploaded")


# ============================================================================
# Ticket Schemas
# ============================================================================


class TicketCreate(BaseModel):
    """
    Ticket creation request.

    WHY: The organization is taken from the project, never from input.
    """

    project_id: int = Field(..., description="Owning project ID")
    title: str = Field(..., max_length=500, description="Ticket title")
    description: Optional[str] = Field(None, max_length=10000, description="Details")
    assigned_to_user_id: Optional[int] = Field(None, description="Designer to assign")
    status: Optional[TicketStatus] = Field(None, description="Initial status (default Open)")


class TicketUpdate(BaseModel):
    """
    Partial ticket update.

    WHY: extra="forbid" makes attempts to move a ticket to another
    project or organization a 400 instead of a silent no-op.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)
    status: Optional[TicketStatus] = None
    assigned_to_user_id: Optional[int] = None


class TicketStatusUpdate(BaseModel):
    """Status change request."""

    status: TicketStatus = Field(..., description="New status")


class ExpressLinkUpdate(BaseModel):
    """Link to the designer's document in the host editor. Empty clears it."""

    link: Optional[str] = Field(None, max_length=2048)


class TicketResponse(BaseModel):
    """Ticket with checklist and attachment metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    project_id: int
    title: str
    description: Optional[str] = None
    status: TicketStatus
    assigned_to_user_id: Optional[int] = None
    created_by_user_id: int
    todos: List[TodoItem] = Field(default_factory=list)
    attachments: List[TicketAttachmentResponse] = Field(default_factory=list)
    express_project_link: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TicketListResponse(BaseModel):
    """
    Paginated ticket list response.

    WHY: Provides pagination metadata alongside items.
    """

    items: List[TicketResponse] = Field(..., description="List of tickets")
    total: int = Field(..., description="Total tickets matching filters")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")
