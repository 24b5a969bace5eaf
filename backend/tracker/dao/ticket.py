"""
Ticket Data Access Object.

WHAT: DAO for ticket CRUD and ticket attachment storage.

WHY: Encapsulates all ticket database operations with:
1. Relationship loading that never touches attachment payloads
2. Filtered, paginated listing (project, status, assignee)
3. Explicit cascade on delete (attachments, review, comments)

HOW: Uses SQLAlchemy 2.0 async. Lookups are by id only; organization
scoping is decided by the caller through assert_in_scope.
"""

from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tracker.models.ticket import Ticket, TicketStatus, TicketAttachment
from tracker.models.review import Review, ReviewComment, CommentAttachment


class TicketDAO:
    """
    Data Access Object for Ticket operations.

    HOW: All methods are async and share the request's session, so a
    service can combine several calls in one transaction.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize TicketDAO with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    async def create(
        self,
        org_id: int,
        project_id: int,
        created_by_user_id: int,
        title: str,
        description: Optional[str] = None,
        status: TicketStatus = TicketStatus.OPEN,
        assigned_to_user_id: Optional[int] = None,
    ) -> Ticket:
        """
        Create a new ticket.

        Args:
            org_id: Organization ID (copied from the project)
            project_id: Owning project
            created_by_user_id: User creating the ticket
            title: Ticket title
            description: Optional description
            status: Initial status
            assigned_to_user_id: Optional assignee

        Returns:
            Created Ticket instance
        """
        now = datetime.utcnow()
        ticket = Ticket(
            org_id=org_id,
            project_id=project_id,
            created_by_user_id=created_by_user_id,
            title=title,
            description=description,
            status=status,
            assigned_to_user_id=assigned_to_user_id,
            todos=[],
            created_at=now,
            updated_at=now,
        )

        self.session.add(ticket)
        await self.session.flush()

        return ticket

    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        """
        Get ticket by ID without relations.

        Args:
            ticket_id: Ticket ID

        Returns:
            Ticket or None if not found
        """
        result = await self.session.execute(select(Ticket).where(Ticket.id == ticket_id))
        return result.scalar_one_or_none()

    async def get_by_id_with_relations(self, ticket_id: int) -> Optional[Ticket]:
        """
        Get ticket by ID with attachment metadata loaded.

        WHY: populate_existing refreshes an instance that is already in the
        identity map, so attachments added or removed earlier in the same
        session show up in the returned collection.

        Args:
            ticket_id: Ticket ID

        Returns:
            Ticket with relations or None
        """
        query = (
            select(Ticket)
            .options(selectinload(Ticket.attachments))
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True)
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        org_id: int,
        skip: int = 0,
        limit: int = 100,
        project_id: Optional[int] = None,
        status: Optional[TicketStatus] = None,
        assigned_to_user_id: Optional[int] = None,
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets with filtering and pagination.

        Args:
            org_id: Organization ID for scoping
            skip: Number of records to skip
            limit: Maximum records to return
            project_id: Filter by project
            status: Filter by status
            assigned_to_user_id: Filter by assignee

        Returns:
            Tuple of (tickets list, total count), newest first
        """
        # Base query with org scoping
        base_query = select(Ticket).where(Ticket.org_id == org_id)

        if project_id is not None:
            base_query = base_query.where(Ticket.project_id == project_id)

        if status is not None:
            base_query = base_query.where(Ticket.status == status)

        if assigned_to_user_id is not None:
            base_query = base_query.where(
                Ticket.assigned_to_user_id == assigned_to_user_id
            )

        # Count total
        count_query = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_query)
        total = total_result.scalar_one()

        # WHY: Eager loading allows the response schema to read attachment
        # metadata without lazy loading in async context.
        list_query = (
            base_query.options(selectinload(Ticket.attachments))
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(list_query)
        tickets = list(result.scalars().all())

        return tickets, total

    async def delete(self, ticket_id: int) -> bool:
        """
        Delete a ticket and everything it owns.

        WHAT: Hard delete of comment attachments, comments, the review,
        ticket attachments and the ticket, in that order.

        WHY: Explicit statements instead of ORM cascades, so nothing has
        to be loaded (payloads included) just to be deleted.

        Args:
            ticket_id: Ticket ID

        Returns:
            True if deleted, False if not found
        """
        review_ids = select(Review.id).where(Review.ticket_id == ticket_id)
        comment_ids = select(ReviewComment.id).where(ReviewComment.review_id.in_(review_ids))

        statements = [
            delete(CommentAttachment).where(CommentAttachment.comment_id.in_(comment_ids)),
            delete(ReviewComment).where(ReviewComment.review_id.in_(review_ids)),
            delete(Review).where(Review.ticket_id == ticket_id),
            delete(TicketAttachment).where(TicketAttachment.ticket_id == ticket_id),
        ]
        for statement in statements:
            await self.session.execute(
                statement.execution_options(synchronize_session=False)
            )

        result = await self.session.execute(
            delete(Ticket)
            .where(Ticket.id == ticket_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0


class TicketAttachmentDAO:
    """
    Data Access Object for TicketAttachment operations.

    WHY: Metadata and payload are read separately. Only the download
    endpoint ever reads bytes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        ticket_id: int,
        uploaded_by_user_id: int,
        filename: str,
        content_type: str,
        payload: bytes,
    ) -> TicketAttachment:
        """
        Store a new attachment.

        Args:
            ticket_id: Ticket ID
            uploaded_by_user_id: User uploading
            filename: Original filename
            content_type: MIME type as sent by the client
            payload: File bytes

        Returns:
            Created TicketAttachment
        """
        attachment = TicketAttachment(
            ticket_id=ticket_id,
            uploaded_by_user_id=uploaded_by_user_id,
            filename=filename,
            content_type=content_type,
            size_bytes=len(payload),
            payload=payload,
            uploaded_at=datetime.utcnow(),
        )

        self.session.add(attachment)
        await self.session.flush()

        return attachment

    async def get_payload(
        self,
        ticket_id: int,
        attachment_id: int,
    ) -> Optional[Tuple[str, str, bytes]]:
        """
        Get (filename, content_type, payload) of an attachment on a ticket.

        Returns:
            Tuple or None if the attachment does not belong to the ticket
        """
        query = select(
            TicketAttachment.filename,
            TicketAttachment.content_type,
            TicketAttachment.payload,
        ).where(
            TicketAttachment.id == attachment_id,
            TicketAttachment.ticket_id == ticket_id,
        )
        row = (await self.session.execute(query)).first()
        if row is None:
            return None
        return row.filename, row.content_type, row.payload

    async def delete(self, ticket_id: int, attachment_id: int) -> bool:
        """
        Delete an attachment from a ticket.

        Returns:
            True if deleted, False if it does not belong to the ticket
        """
        result = await self.session.execute(
            delete(TicketAttachment)
            .where(
                TicketAttachment.id == attachment_id,
                TicketAttachment.ticket_id == ticket_id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
