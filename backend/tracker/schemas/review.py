"""
Pydantic schemas for review endpoints.

WHAT: Request/response schemas for the review log and its comments.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from tracker.models.ticket import TicketStatus
from tracker.schemas.ticket import TicketResponse


class StatusChangeAnnotation(BaseModel):
    """
    Status change reported by a comment, e.g. {"from": "Review", "to": "Done"}.

    WHY: Stored with the comment only. It does not change the ticket.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_status: TicketStatus = Field(..., alias="from")
    to_status: TicketStatus = Field(..., alias="to")


class CommentCreate(BaseModel):
    """JSON body for a comment without attachments."""

    text: str = Field(..., max_length=10000)
    status_change: Optional[StatusChangeAnnotation] = None


class StatusChangeCommentCreate(BaseModel):
    """JSON body for moving a ticket and commenting in one step."""

    text: str = Field(..., max_length=10000)
    status: TicketStatus


class CommentAttachmentResponse(BaseModel):
    """Comment attachment metadata, without the payload."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    comment_id: int
    filename: str
    content_type: str
    size_bytes: int
    uploaded_at: datetime


class CommentResponse(BaseModel):
    """One entry of the review log."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    review_id: int
    author_id: int
    text: str
    is_status_change: bool
    status_change_from: Optional[TicketStatus] = None
    status_change_to: Optional[TicketStatus] = None
    created_at: datetime
    attachments: List[CommentAttachmentResponse] = Field(default_factory=list)


class ReviewResponse(BaseModel):
    """
    Review log of a ticket.

    WHY: A ticket nobody has commented on yet answers with an empty log
    (id is None) rather than 404.
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    ticket_id: int
    comments: List[CommentResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusChangeResponse(BaseModel):
    """Result of a combined status change and comment."""

    ticket: TicketResponse
    comment: CommentResponse
