"""
Review models.

WHAT: SQLAlchemy models for the per-ticket review log, its comments and
the files attached to those comments.

WHY: The review is the collaboration record of a ticket:
1. Exactly one review per ticket (unique ticket_id)
2. Comments are append-only, never edited or deleted
3. Comments may carry attachments and a status-change annotation

HOW: Comments are ordered by primary key, which follows insertion order.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.models.base import Base


class Review(Base):
    """
    Review log of a ticket.

    Created lazily on the first comment. Deleted together with its ticket.
    """

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=False, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    comments: Mapped[List["ReviewComment"]] = relationship(
        "ReviewComment",
        back_populates="review",
        order_by="ReviewComment.id",
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, ticket_id={self.ticket_id})>"


class ReviewComment(Base):
    """
    One entry of a review log.

    WHAT: Free text from a member, optionally annotated as a status change.

    WHY: The status_change_* columns record what the author said happened.
    They do not drive the ticket status on their own.
    """

    __tablename__ = "review_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    review_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reviews.id"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    # Status change annotation
    is_status_change: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status_change_from: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status_change_to: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    review: Mapped["Review"] = relationship("Review", back_populates="comments")
    attachments: Mapped[List["CommentAttachment"]] = relationship(
        "CommentAttachment",
        back_populates="comment",
        order_by="CommentAttachment.id",
    )

    __table_args__ = (
        Index("ix_review_comments_review_id", "review_id"),
    )

    def __repr__(self) -> str:
        return f"<ReviewComment(id={self.id}, review_id={self.review_id}, is_status_change={self.is_status_change})>"


class CommentAttachment(Base):
    """
    File attached to a review comment.

    Immutable once logged. The payload is deferred like TicketAttachment.payload.
    """

    __tablename__ = "comment_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    comment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("review_comments.id"), nullable=False
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[bytes] = mapped_column(
        LargeBinary, nullable=False, deferred=True, deferred_raiseload=True
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    comment: Mapped["ReviewComment"] = relationship(
        "ReviewComment", back_populates="attachments"
    )

    __table_args__ = (
        Index("ix_comment_attachments_comment_id", "comment_id"),
    )

    def __repr__(self) -> str:
        return f"<CommentAttachment(id={self.id}, filename='{self.filename}')>"
