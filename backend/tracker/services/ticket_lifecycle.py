"""
Ticket lifecycle service.

WHAT: Creation, listing, updates, status changes and deletion of tickets.

WHY: Routes stay thin and every rule lives here:
1. Scope check first (out-of-organization tickets are "not found")
2. Permission matrix second
3. Status transitions checked against a configurable matrix
4. updated_at refreshed on every successful mutation

HOW: Works on the request's AsyncSession through TicketDAO. Nothing is
committed here; get_db commits once the route returns.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.config import settings
from tracker.core.exceptions import (
    InvalidStateTransitionError,
    ProjectNotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from tracker.core.permissions import Action, Principal, assert_in_scope, require
from tracker.dao.project import ProjectDAO
from tracker.dao.ticket import TicketDAO
from tracker.dao.user import UserDAO
from tracker.models.ticket import Ticket, TicketStatus
from tracker.models.user import UserRole

logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = frozenset({"title", "description", "status", "assigned_to_user_id"})


# ============================================================================
# Status transitions
# ============================================================================


class StatusTransitionPolicy:
    """
    Allow-matrix of ticket status transitions.

    WHAT: Decides whether a ticket may move from one status to another.

    WHY: The board is free-form by default (Done back to Open is legal),
    but an organization may restrict it through TICKET_STATUS_TRANSITIONS.

    Rules:
    - No matrix configured: every transition is legal
    - Matrix configured: target must be listed under the current status;
      a status missing from the matrix has no outgoing transitions
    - Re-setting the current status is always legal
    """

    def __init__(self, transitions: Optional[Mapping[str, Iterable[str]]] = None):
        self._allowed: Optional[Dict[TicketStatus, FrozenSet[TicketStatus]]] = None
        if transitions is not None:
            try:
                self._allowed = {
                    TicketStatus(source): frozenset(TicketStatus(target) for target in targets)
                    for source, targets in transitions.items()
                }
            except ValueError as e:
                raise ValueError(f"Invalid TICKET_STATUS_TRANSITIONS: {e}") from e

    @classmethod
    def from_settings(cls) -> "StatusTransitionPolicy":
        return cls(settings.TICKET_STATUS_TRANSITIONS)

    @property
    def is_unrestricted(self) -> bool:
        return self._allowed is None

    def is_allowed(self, current: TicketStatus, target: TicketStatus) -> bool:
        if self._allowed is None or current == target:
            return True
        return target in self._allowed.get(current, frozenset())

    def allowed_targets(self, current: TicketStatus) -> List[TicketStatus]:
        """List the statuses reachable from the current one, board order."""
        return [status for status in TicketStatus if self.is_allowed(current, status)]

    def check(self, current: TicketStatus, target: TicketStatus) -> None:
        """
        Raise unless the transition is allowed.

        Raises:
            InvalidStateTransitionError: If the matrix forbids the move
        """
        if not self.is_allowed(current, target):
            raise InvalidStateTransitionError(
                message=f"Cannot move ticket from {current.value} to {target.value}",
                current_status=current.value,
                requested_status=target.value,
                allowed=[status.value for status in self.allowed_targets(current)],
            )


# ============================================================================
# Service
# ============================================================================


def clean_title(title: Optional[str]) -> str:
    """Trim a ticket title, rejecting blank ones."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError(message="Title is required", field="title")
    return cleaned


def clean_optional_text(value: Optional[str]) -> Optional[str]:
    """Trim free text, storing blank values as None."""
    if value is None:
        return None
    return value.strip() or None


class TicketLifecycleService:
    """
    Service for ticket CRUD and status management.

    Usage:
        service = TicketLifecycleService(db)
        ticket = await service.create_ticket(principal, project_id=1, title="Hero banner")
    """

    def __init__(
        self,
        session: AsyncSession,
        transitions: Optional[StatusTransitionPolicy] = None,
    ):
        self.session = session
        self.ticket_dao = TicketDAO(session)
        self.project_dao = ProjectDAO(session)
        self.user_dao = UserDAO(session)
        self.transitions = transitions or StatusTransitionPolicy.from_settings()

    # =========================================================================
    # Loading
    # =========================================================================

    async def load_ticket(self, principal: Principal, ticket_id: int) -> Ticket:
        """
        Load a ticket visible to the principal, with attachment metadata.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
        """
        ticket = await self.ticket_dao.get_by_id_with_relations(ticket_id)
        return assert_in_scope(principal, ticket, not_found=TicketNotFoundError, ticket_id=ticket_id)

    async def _validate_assignee(self, principal: Principal, user_id: Optional[int]) -> None:
        if user_id is None:
            return
        member = await self.user_dao.get_member(user_id, principal.org_id)
        if member is None:
            raise ValidationError(
                message="Assignee must be a member of your organization",
                assigned_to_user_id=user_id,
            )

    # =========================================================================
    # Operations
    # =========================================================================

    async def create_ticket(
        self,
        principal: Principal,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        assigned_to_user_id: Optional[int] = None,
        status: Optional[TicketStatus] = None,
    ) -> Ticket:
        """
        Create a ticket in one of the principal's projects.

        WHY: org_id is copied from the project, never taken from input.

        Raises:
            ProjectNotFoundError: If the project is missing or out of scope
            AuthorizationError: If the role may not create tickets
            ValidationError: If the title is blank or the assignee is foreign
        """
        project = await self.project_dao.get_by_id(project_id)
        assert_in_scope(principal, project, not_found=ProjectNotFoundError, project_id=project_id)
        require(principal, Action.CREATE_TICKET)

        cleaned_title = clean_title(title)
        await self._validate_assignee(principal, assigned_to_user_id)

        ticket = await self.ticket_dao.create(
            org_id=project.org_id,
            project_id=project.id,
            created_by_user_id=principal.id,
            title=cleaned_title,
            description=clean_optional_text(description),
            status=status or TicketStatus.OPEN,
            assigned_to_user_id=assigned_to_user_id,
        )

        logger.info(
            f"Ticket {ticket.id} created in project {project.id} by user {principal.id}"
        )
        return await self.ticket_dao.get_by_id_with_relations(ticket.id)

    async def list_tickets(
        self,
        principal: Principal,
        project_id: Optional[int] = None,
        status: Optional[TicketStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets of the principal's organization.

        WHY: Designers only see their own assignments in lists. A principal
        without an organization gets an empty list, not an error.

        Returns:
            Tuple of (tickets, total count)
        """
        if not principal.has_organization:
            return [], 0

        assigned_to = principal.id if principal.role == UserRole.DESIGNER else None

        return await self.ticket_dao.list(
            org_id=principal.org_id,
            skip=skip,
            limit=limit,
            project_id=project_id,
            status=status,
            assigned_to_user_id=assigned_to,
        )

    async def get_ticket(self, principal: Principal, ticket_id: int) -> Ticket:
        """Get a ticket by id. Any role may read in-scope tickets."""
        return await self.load_ticket(principal, ticket_id)

    async def update_ticket(
        self,
        principal: Principal,
        ticket_id: int,
        changes: Dict[str, Any],
    ) -> Ticket:
        """
        Partially update a ticket.

        Args:
            principal: The caller
            ticket_id: Ticket ID
            changes: Subset of title, description, status, assigned_to_user_id

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If UpdateTicket (or AssignTicket for a new
                assignee) is denied
            ValidationError: If a field is invalid or not updatable
            InvalidStateTransitionError: If the status move is forbidden
        """
        ticket = await self.load_ticket(principal, ticket_id)
        require(principal, Action.UPDATE_TICKET, ticket)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                message=f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )

        if "assigned_to_user_id" in changes:
            new_assignee = changes["assigned_to_user_id"]
            if new_assignee != ticket.assigned_to_user_id:
                require(principal, Action.ASSIGN_TICKET, ticket)
                await self._validate_assignee(principal, new_assignee)
                ticket.assigned_to_user_id = new_assignee

        if "title" in changes:
            ticket.title = clean_title(changes["title"])

        if "description" in changes:
            ticket.description = clean_optional_text(changes["description"])

        if changes.get("status") is not None:
            self.apply_status(ticket, TicketStatus(changes["status"]))

        ticket.touch()
        await self.session.flush()

        logger.info(
            f"Ticket {ticket.id} updated by user {principal.id}: {', '.join(sorted(changes)) or 'no fields'}"
        )
        return ticket

    def apply_status(self, ticket: Ticket, new_status: TicketStatus) -> TicketStatus:
        """
        Move a loaded ticket to a new status after checking the matrix.

        Returns:
            The previous status
        """
        previous = ticket.status
        self.transitions.check(previous, new_status)
        ticket.status = new_status
        ticket.touch()
        return previous

    async def set_status(
        self,
        principal: Principal,
        ticket_id: int,
        new_status: TicketStatus,
    ) -> Ticket:
        """
        Change the status of a ticket.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If UpdateTicket is denied
            InvalidStateTransitionError: If the status move is forbidden
        """
        ticket = await self.load_ticket(principal, ticket_id)
        require(principal, Action.UPDATE_TICKET, ticket)

        previous = self.apply_status(ticket, new_status)
        await self.session.flush()

        logger.info(
            f"Ticket {ticket.id} status {previous.value} -> {new_status.value} by user {principal.id}"
        )
        return ticket

    async def update_express_link(
        self,
        principal: Principal,
        ticket_id: int,
        link: Optional[str],
    ) -> Ticket:
        """
        Set or clear the link to the designer's document in the host editor.

        WHY: Only the assigned designer links their own work. An empty
        link clears it.
        """
        ticket = await self.load_ticket(principal, ticket_id)
        require(principal, Action.UPDATE_EXPRESS_LINK, ticket)

        ticket.express_project_link = clean_optional_text(link)
        ticket.touch()
        await self.session.flush()

        logger.info(f"Ticket {ticket.id} express link updated by user {principal.id}")
        return ticket

    async def delete_ticket(self, principal: Principal, ticket_id: int) -> None:
        """
        Delete a ticket together with its attachments and review log.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If the role is not ADMIN
        """
        ticket = await self.load_ticket(principal, ticket_id)
        require(principal, Action.DELETE_TICKET, ticket)

        await self.ticket_dao.delete(ticket.id)
        logger.info(f"Ticket {ticket_id} deleted by user {principal.id}")
