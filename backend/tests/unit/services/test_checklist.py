"""
Unit tests for the checklist engine.

WHAT: Tests the pure list operations and ChecklistService.

WHY: Verifies that:
1. Index addressing fails loudly outside the list
2. Completed items cannot be deleted and the list stays intact
3. Toggling twice restores the original item
4. Only assigned designers toggle; only managers add and delete
5. Suggestions are never stored and skip items already present
"""

import pytest

from tracker.core.exceptions import (
    AuthorizationError,
    ChecklistIndexError,
    ChecklistSuggestionError,
    CompletedChecklistItemError,
    TicketNotFoundError,
    ValidationError,
)
from tracker.core.permissions import Principal
from tracker.dao.ticket import TicketDAO
from tracker.services.checklist import (
    ChecklistService,
    append_todos,
    make_todo,
    remove_todo_at,
    toggle_todo_at,
)
from tests.factories import TicketFactory, completion_response, todo


class TestListOperations:
    """Tests for the pure checklist functions."""

    def test_make_todo(self):
        item = make_todo("  Export hero image  ")

        assert item["text"] == "Export hero image"
        assert item["is_completed"] is False
        assert len(item["id"]) == 32

    def test_make_todo_ids_are_unique(self):
        assert make_todo("a")["id"] != make_todo("a")["id"]

    def test_make_todo_rejects_blank(self):
        with pytest.raises(ValidationError):
            make_todo("   ")

    def test_append_skips_blank_texts(self):
        existing = [todo("Sketch")]

        result = append_todos(existing, ["Ink", "", "  ", "Color"])

        assert [item["text"] for item in result] == ["Sketch", "Ink", "Color"]
        assert len(existing) == 1

    def test_append_all_blank_rejected(self):
        with pytest.raises(ValidationError):
            append_todos([], ["", "  "])

    def test_toggle_flips_one_item(self):
        todos = [todo("A"), todo("B")]

        result = toggle_todo_at(todos, 1)

        assert [item["is_completed"] for item in result] == [False, True]
        assert todos[1]["is_completed"] is False

    def test_double_toggle_is_identity(self):
        todos = [todo("A"), todo("B", is_completed=True)]

        assert toggle_todo_at(toggle_todo_at(todos, 1), 1) == todos

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_toggle_out_of_range(self, index):
        with pytest.raises(ChecklistIndexError):
            toggle_todo_at([todo("A"), todo("B")], index)

    def test_remove_open_item(self):
        todos = [todo("A"), todo("B"), todo("C")]

        result = remove_todo_at(todos, 1)

        assert [item["text"] for item in result] == ["A", "C"]

    def test_remove_completed_item_rejected(self):
        todos = [todo("A", is_completed=True), todo("B")]

        with pytest.raises(CompletedChecklistItemError) as exc_info:
            remove_todo_at(todos, 0)

        assert exc_info.value.status_code == 409
        assert len(todos) == 2

    def test_remove_out_of_range(self):
        with pytest.raises(ChecklistIndexError):
            remove_todo_at([], 0)


class TestChecklistService:
    """Tests for ChecklistService against the database."""

    @pytest.mark.asyncio
    async def test_assigned_designer_toggles(self, db_session, test_manager, test_designer, test_project):
        """An assigned designer ticks off their own item."""
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager,
            assigned_to=test_designer, todos=[todo("Draft layout")],
        )

        service = ChecklistService(db_session)
        updated = await service.toggle_todo(Principal.from_user(test_designer), ticket.id, 0)

        assert updated.todos[0]["is_completed"] is True

        reloaded = await TicketDAO(db_session).get_by_id_with_relations(ticket.id)
        assert reloaded.todos[0]["is_completed"] is True

    @pytest.mark.asyncio
    async def test_unassigned_designer_cannot_toggle(
        self, db_session, test_manager, test_designer, test_project
    ):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, todos=[todo("Draft layout")]
        )

        service = ChecklistService(db_session)
        with pytest.raises(AuthorizationError):
            await service.toggle_todo(Principal.from_user(test_designer), ticket.id, 0)

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_completed_item(self, db_session, test_admin, test_manager, test_project):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, todos=[todo("Approved", is_completed=True)]
        )

        service = ChecklistService(db_session)
        with pytest.raises(CompletedChecklistItemError):
            await service.delete_todo(Principal.from_user(test_admin), ticket.id, 0)

        reloaded = await TicketDAO(db_session).get_by_id_with_relations(ticket.id)
        assert len(reloaded.todos) == 1

    @pytest.mark.asyncio
    async def test_manager_adds_and_deletes(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ChecklistService(db_session)

        await service.add_todos(principal, ticket.id, ["Moodboard", "Typography"])
        updated = await service.delete_todo(principal, ticket.id, 0)

        assert [item["text"] for item in updated.todos] == ["Typography"]

    @pytest.mark.asyncio
    async def test_designer_cannot_add(self, db_session, test_manager, test_designer, test_project):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, assigned_to=test_designer
        )

        service = ChecklistService(db_session)
        with pytest.raises(AuthorizationError):
            await service.add_todo(Principal.from_user(test_designer), ticket.id, "Extra")

    @pytest.mark.asyncio
    async def test_foreign_ticket_is_not_found(self, db_session, test_manager, test_project, foreign_admin):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, todos=[todo("A")]
        )

        service = ChecklistService(db_session)
        with pytest.raises(TicketNotFoundError):
            await service.toggle_todo(Principal.from_user(foreign_admin), ticket.id, 0)


class TestSuggestTodos:
    """Tests for checklist suggestions."""

    @pytest.mark.asyncio
    async def test_suggestions_skip_existing_items(
        self, db_session, test_manager, test_project, suggestion_stub
    ):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager,
            title="Poster", todos=[todo("Pick palette")],
        )
        suggestion_stub._client.chat.completions.create.return_value = completion_response(
            '{"items": ["pick palette", "Set headline type"]}'
        )

        service = ChecklistService(db_session, suggestion_stub)
        items = await service.suggest_todos(Principal.from_user(test_manager), ticket.id)

        assert items == ["Set headline type"]

        reloaded = await TicketDAO(db_session).get_by_id_with_relations(ticket.id)
        assert len(reloaded.todos) == 1

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(
        self, db_session, test_manager, test_project, suggestion_stub
    ):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        suggestion_stub._client.chat.completions.create.side_effect = ChecklistSuggestionError(
            message="upstream down"
        )

        service = ChecklistService(db_session, suggestion_stub)
        with pytest.raises(ChecklistSuggestionError):
            await service.suggest_todos(Principal.from_user(test_manager), ticket.id)

    @pytest.mark.asyncio
    async def test_designer_cannot_ask_for_suggestions(
        self, db_session, test_manager, test_designer, test_project, suggestion_stub
    ):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, assigned_to=test_designer
        )

        service = ChecklistService(db_session, suggestion_stub)
        with pytest.raises(AuthorizationError):
            await service.suggest_todos(Principal.from_user(test_designer), ticket.id)
