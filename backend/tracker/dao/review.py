"""
Review Data Access Object.

WHAT: DAO for review logs, their comments and comment attachments.

WHY: Comments are append-only, so this DAO has create and read methods
and no update or delete. Deletion only happens through TicketDAO.delete.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tracker.models.review import Review, ReviewComment, CommentAttachment


class ReviewDAO:
    """
    Data Access Object for Review operations.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize ReviewDAO with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    async def get_by_ticket(self, ticket_id: int) -> Optional[Review]:
        """Get the review of a ticket without comments."""
        result = await self.session.execute(
            select(Review).where(Review.ticket_id == ticket_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ticket_with_comments(self, ticket_id: int) -> Optional[Review]:
        """
        Get the review of a ticket with comments and attachment metadata.

        WHY: Comments come back in insertion order through the relationship's
        order_by. populate_existing picks up comments appended earlier in the
        same session.
        """
        query = (
            select(Review)
            .options(
                selectinload(Review.comments).selectinload(ReviewComment.attachments)
            )
            .where(Review.ticket_id == ticket_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, ticket_id: int) -> Review:
        """
        Create the review of a ticket.

        Raises:
            IntegrityError: If the ticket already has a review
        """
        now = datetime.utcnow()
        review = Review(ticket_id=ticket_id, created_at=now, updated_at=now)
        self.session.add(review)
        await self.session.flush()
        return review

    async def add_comment(
        self,
        review: Review,
        author_id: int,
        text: str,
        attachments: List[Tuple[str, str, bytes]] = (),
        status_change_from: Optional[str] = None,
        status_change_to: Optional[str] = None,
    ) -> ReviewComment:
        """
        Append a comment, with its attachments, to a review.

        Args:
            review: Target review
            author_id: Commenting user
            text: Comment text
            attachments: (filename, content_type, payload) tuples
            status_change_from: Status before, for status-change annotations
            status_change_to: Status after, for status-change annotations

        Returns:
            The created ReviewComment
        """
        now = datetime.utcnow()
        comment = ReviewComment(
            review_id=review.id,
            author_id=author_id,
            text=text,
            is_status_change=status_change_to is not None,
            status_change_from=status_change_from,
            status_change_to=status_change_to,
            created_at=now,
        )
        self.session.add(comment)
        await self.session.flush()

        for filename, content_type, payload in attachments:
            self.session.add(
                CommentAttachment(
                    comment_id=comment.id,
                    filename=filename,
                    content_type=content_type,
                    size_bytes=len(payload),
                    payload=payload,
                    uploaded_at=now,
                )
            )

        review.updated_at = now
        await self.session.flush()

        return comment

    async def get_comment_with_attachments(self, comment_id: int) -> Optional[ReviewComment]:
        """Get a comment with attachment metadata loaded."""
        query = (
            select(ReviewComment)
            .options(selectinload(ReviewComment.attachments))
            .where(ReviewComment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_comment_for_ticket(self, ticket_id: int, comment_id: int) -> Optional[ReviewComment]:
        """Get a comment only if it belongs to the review of the given ticket."""
        query = (
            select(ReviewComment)
            .join(Review, Review.id == ReviewComment.review_id)
            .where(ReviewComment.id == comment_id, Review.ticket_id == ticket_id)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_comment_attachment_payload(
        self,
        ticket_id: int,
        comment_id: int,
        attachment_id: int,
    ) -> Optional[Tuple[str, str, bytes]]:
        """
        Get (filename, content_type, payload) of a comment attachment.

        WHY: The join through review_comments and reviews makes a comment
        id from another ticket resolve to nothing.

        Returns:
            Tuple or None if any id does not resolve on this ticket
        """
        query = (
            select(
                CommentAttachment.filename,
                CommentAttachment.content_type,
                CommentAttachment.payload,
            )
            .join(ReviewComment, ReviewComment.id == CommentAttachment.comment_id)
            .join(Review, Review.id == ReviewComment.review_id)
            .where(
                CommentAttachment.id == attachment_id,
                CommentAttachment.comment_id == comment_id,
                Review.ticket_id == ticket_id,
            )
        )
        row = (await self.session.execute(query)).first()
        if row is None:
            return None
        return row.filename, row.content_type, row.payload
