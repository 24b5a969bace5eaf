"""
Checklist (todo) engine.

WHAT: Adds, toggles and deletes the ordered checklist items of a ticket,
and proposes new items through the suggestion client.

WHY: Items are addressed by position, as the UI shows them. Two rules
protect finished work:
1. An index outside the list is a validation error, never a no-op
2. A completed item cannot be deleted; the list stays exactly as it was

HOW: Pure functions build a new list from the old one; ChecklistService
loads the ticket, checks scope and permissions, and writes the new list
back as a whole (JSON column).
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.exceptions import (
    ChecklistIndexError,
    CompletedChecklistItemError,
    ValidationError,
)
from tracker.core.permissions import Action, Principal, require
from tracker.models.ticket import Ticket
from tracker.services.checklist_suggestions import ChecklistSuggestionService
from tracker.services.ticket_lifecycle import TicketLifecycleService

logger = logging.getLogger(__name__)


Todo = Dict[str, Any]


# ============================================================================
# List operations
# ============================================================================


def make_todo(text: str) -> Todo:
    """Build a new, not completed checklist item with a generated id."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError(message="Checklist item text is required", field="text")
    return {"id": uuid.uuid4().hex, "text": cleaned, "is_completed": False}


def _check_index(todos: List[Todo], index: int) -> None:
    if index < 0 or index >= len(todos):
        raise ChecklistIndexError(
            message=f"Checklist item {index} does not exist",
            index=index,
            size=len(todos),
        )


def append_todos(todos: List[Todo], texts: Iterable[str]) -> List[Todo]:
    """
    Return a new list with non-blank texts appended as items.

    Raises:
        ValidationError: If every text is blank
    """
    new_items = [make_todo(text) for text in texts if text and text.strip()]
    if not new_items:
        raise ValidationError(message="At least one checklist item is required", field="texts")
    return [dict(todo) for todo in todos] + new_items


def toggle_todo_at(todos: List[Todo], index: int) -> List[Todo]:
    """
    Return a new list with the item at index flipped.

    Raises:
        ChecklistIndexError: If index is out of range
    """
    _check_index(todos, index)
    toggled = [dict(todo) for todo in todos]
    toggled[index]["is_completed"] = not toggled[index].get("is_completed", False)
    return toggled


def remove_todo_at(todos: List[Todo], index: int) -> List[Todo]:
    """
    Return a new list without the item at index.

    Raises:
        ChecklistIndexError: If index is out of range
        CompletedChecklistItemError: If the item is completed
    """
    _check_index(todos, index)
    if todos[index].get("is_completed"):
        raise CompletedChecklistItemError(index=index)
    return [dict(todo) for position, todo in enumerate(todos) if position != index]


# ============================================================================
# Service
# ============================================================================


class ChecklistService:
    """
    Service for checklist mutations on a ticket.

    Usage:
        service = ChecklistService(db)
        ticket = await service.toggle_todo(principal, ticket_id=3, index=0)
    """

    def __init__(
        self,
        session: AsyncSession,
        suggestions: Optional[ChecklistSuggestionService] = None,
    ):
        self.session = session
        self.lifecycle = TicketLifecycleService(session)
        self.suggestions = suggestions

    async def _save(self, ticket: Ticket, todos: List[Todo]) -> Ticket:
        # Assign a new list so the JSON column is marked dirty
        ticket.todos = todos
        ticket.touch()
        await self.session.flush()
        return ticket

    async def add_todo(self, principal: Principal, ticket_id: int, text: str) -> Ticket:
        """Append one item to the checklist."""
        return await self.add_todos(principal, ticket_id, [text])

    async def add_todos(
        self,
        principal: Principal,
        ticket_id: int,
        texts: List[str],
    ) -> Ticket:
        """
        Append several items, e.g. accepted suggestions.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If AddTodo is denied
            ValidationError: If no text is non-blank
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.ADD_TODO, ticket)

        todos = append_todos(ticket.todos or [], texts)
        added = len(todos) - len(ticket.todos or [])
        await self._save(ticket, todos)

        logger.info(f"Ticket {ticket.id}: {added} checklist item(s) added by user {principal.id}")
        return ticket

    async def toggle_todo(self, principal: Principal, ticket_id: int, index: int) -> Ticket:
        """
        Flip the completion flag of one item.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If ToggleTodo is denied
            ChecklistIndexError: If index is out of range
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.TOGGLE_TODO, ticket)

        todos = toggle_todo_at(ticket.todos or [], index)
        await self._save(ticket, todos)

        logger.info(
            f"Ticket {ticket.id}: checklist item {index} set to "
            f"{'done' if todos[index]['is_completed'] else 'open'} by user {principal.id}"
        )
        return ticket

    async def delete_todo(self, principal: Principal, ticket_id: int, index: int) -> Ticket:
        """
        Remove one item that is not completed.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If DeleteTodo is denied
            ChecklistIndexError: If index is out of range
            CompletedChecklistItemError: If the item is completed
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.DELETE_TODO, ticket)

        todos = remove_todo_at(ticket.todos or [], index)
        await self._save(ticket, todos)

        logger.info(f"Ticket {ticket.id}: checklist item {index} deleted by user {principal.id}")
        return ticket

    async def suggest_todos(self, principal: Principal, ticket_id: int) -> List[str]:
        """
        Propose checklist items for a ticket without storing them.

        WHY: Suggestions already on the checklist are dropped so accepting
        all of them never duplicates an item.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If AddTodo is denied
            ChecklistSuggestionError: If the suggestion client fails
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.ADD_TODO, ticket)

        suggestions = self.suggestions or ChecklistSuggestionService()
        items = await suggestions.suggest(ticket.title, ticket.description)

        existing = {str(todo.get("text", "")).lower() for todo in ticket.todos or []}
        return [item for item in items if item.lower() not in existing]
