"""
Review log service.

WHAT: The append-only collaboration log of a ticket: comments, their
attachments, and status-change annotations.

WHY: Comments are never edited or deleted, so the log is a faithful
record of the conversation around a piece of design work.

A status-change annotation on a plain comment records what the author
reports; it does not move the ticket. comment_with_status_change moves the
ticket and logs the annotated comment in the same transaction, so the two
cannot drift apart when done through it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.config import settings
from tracker.core.exceptions import (
    AttachmentNotFoundError,
    CommentNotFoundError,
    ValidationError,
)
from tracker.core.permissions import Action, Principal, require
from tracker.dao.review import ReviewDAO
from tracker.models.review import Review, ReviewComment
from tracker.models.ticket import Ticket, TicketStatus
from tracker.services.attachments import AttachmentContent, AttachmentUpload, check_upload
from tracker.services.ticket_lifecycle import StatusTransitionPolicy, TicketLifecycleService

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    """Status-change annotation reported by a comment's author."""

    from_status: TicketStatus
    to_status: TicketStatus


def clean_comment_text(text: Optional[str]) -> str:
    """Trim comment text, rejecting blank comments."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError(message="Comment text is required", field="text")
    return cleaned


class ReviewLogService:
    """
    Service for review logs.

    Usage:
        service = ReviewLogService(db)
        comment = await service.append_comment(principal, ticket_id, "Looks good")
    """

    def __init__(
        self,
        session: AsyncSession,
        transitions: Optional[StatusTransitionPolicy] = None,
        max_attachment_bytes: Optional[int] = None,
    ):
        self.session = session
        self.review_dao = ReviewDAO(session)
        self.lifecycle = TicketLifecycleService(session, transitions)
        self.max_attachment_bytes = max_attachment_bytes or settings.COMMENT_ATTACHMENT_MAX_BYTES

    async def ensure_review(self, ticket_id: int) -> Review:
        """Get the review of a ticket, creating it on first use."""
        review = await self.review_dao.get_by_ticket(ticket_id)
        if review is None:
            review = await self.review_dao.create(ticket_id)
            logger.info(f"Review {review.id} opened for ticket {ticket_id}")
        return review

    async def get_review(self, principal: Principal, ticket_id: int) -> Optional[Review]:
        """
        Get the review log of a ticket with comments in insertion order.

        Returns:
            The review, or None if nobody has commented yet

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        return await self.review_dao.get_by_ticket_with_comments(ticket.id)

    def _check_attachments(self, attachments: Sequence[AttachmentUpload]) -> None:
        for upload in attachments:
            check_upload(upload, self.max_attachment_bytes)

    async def _log_comment(
        self,
        ticket: Ticket,
        principal: Principal,
        text: str,
        attachments: Sequence[AttachmentUpload],
        status_change: Optional[StatusChange],
    ) -> ReviewComment:
        review = await self.ensure_review(ticket.id)
        comment = await self.review_dao.add_comment(
            review,
            author_id=principal.id,
            text=text,
            attachments=[upload.as_tuple() for upload in attachments],
            status_change_from=status_change.from_status.value if status_change else None,
            status_change_to=status_change.to_status.value if status_change else None,
        )
        logger.info(
            f"Ticket {ticket.id}: comment {comment.id} by user {principal.id}"
            f" with {len(attachments)} attachment(s)"
        )
        return await self.review_dao.get_comment_with_attachments(comment.id)

    async def append_comment(
        self,
        principal: Principal,
        ticket_id: int,
        text: str,
        attachments: Sequence[AttachmentUpload] = (),
        status_change: Optional[StatusChange] = None,
    ) -> ReviewComment:
        """
        Append a comment to a ticket's review log.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If AddComment is denied
            ValidationError: If the text is blank or a file is empty
            AttachmentTooLargeError: If a file exceeds the comment ceiling
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.ADD_COMMENT, ticket)

        cleaned = clean_comment_text(text)
        self._check_attachments(attachments)

        return await self._log_comment(ticket, principal, cleaned, attachments, status_change)

    async def comment_with_status_change(
        self,
        principal: Principal,
        ticket_id: int,
        text: str,
        new_status: TicketStatus,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> Tuple[Ticket, ReviewComment]:
        """
        Move a ticket to a new status and log an annotated comment.

        WHY: Both writes happen in the request's transaction, so either the
        status and the comment are both stored or neither is.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If AddComment or UpdateTicket is denied
            ValidationError: If the text is blank or a file is invalid
            InvalidStateTransitionError: If the status move is forbidden
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.ADD_COMMENT, ticket)
        require(principal, Action.UPDATE_TICKET, ticket)

        cleaned = clean_comment_text(text)
        self._check_attachments(attachments)

        previous = self.lifecycle.apply_status(ticket, new_status)
        comment = await self._log_comment(
            ticket,
            principal,
            cleaned,
            attachments,
            StatusChange(from_status=previous, to_status=new_status),
        )

        logger.info(
            f"Ticket {ticket.id} status {previous.value} -> {new_status.value} by user {principal.id} (with comment)"
        )
        return ticket, comment

    async def fetch_comment_attachment(
        self,
        principal: Principal,
        ticket_id: int,
        comment_id: int,
        attachment_id: int,
    ) -> AttachmentContent:
        """
        Fetch the bytes of a comment attachment.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            CommentNotFoundError: If the comment is not on this ticket
            AttachmentNotFoundError: If the attachment is not on the comment
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)

        comment = await self.review_dao.get_comment_for_ticket(ticket.id, comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id=comment_id)

        row = await self.review_dao.get_comment_attachment_payload(
            ticket.id, comment_id, attachment_id
        )
        if row is None:
            raise AttachmentNotFoundError(comment_id=comment_id, attachment_id=attachment_id)

        filename, content_type, payload = row
        return AttachmentContent(filename=filename, content_type=content_type, payload=payload)
