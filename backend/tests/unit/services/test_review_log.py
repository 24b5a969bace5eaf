"""
Unit tests for ReviewLogService.

WHAT: Tests the append-only review log of a ticket.

WHY: Verifies that:
1. The review is created lazily on the first comment
2. Blank comments are rejected and nothing is appended
3. A status-change annotation alone never moves the ticket
4. comment_with_status_change moves the ticket and logs both statuses
5. Comment attachments round-trip byte for byte
"""

import pytest

from tracker.core.exceptions import (
    AttachmentNotFoundError,
    AttachmentTooLargeError,
    AuthorizationError,
    CommentNotFoundError,
    InvalidStateTransitionError,
    TicketNotFoundError,
    ValidationError,
)
from tracker.core.permissions import Principal
from tracker.models.ticket import TicketStatus
from tracker.services.attachments import AttachmentUpload
from tracker.services.review_log import ReviewLogService, StatusChange
from tracker.services.ticket_lifecycle import StatusTransitionPolicy
from tests.factories import TicketFactory


class TestAppendComment:
    """Tests for append_comment and get_review."""

    @pytest.mark.asyncio
    async def test_no_review_before_first_comment(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)

        review = await ReviewLogService(db_session).get_review(Principal.from_user(test_manager), ticket.id)

        assert review is None

    @pytest.mark.asyncio
    async def test_first_comment_opens_review(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session)

        comment = await service.append_comment(principal, ticket.id, "  Looks good  ")

        assert comment.text == "Looks good"
        assert comment.author_id == test_manager.id
        assert comment.is_status_change is False
        assert comment.attachments == []

        review = await service.get_review(principal, ticket.id)
        assert review.ticket_id == ticket.id
        assert [c.id for c in review.comments] == [comment.id]

    @pytest.mark.asyncio
    async def test_comments_kept_in_insertion_order(self, db_session, test_manager, test_designer, test_project):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, assigned_to=test_designer
        )
        service = ReviewLogService(db_session)

        await service.append_comment(Principal.from_user(test_manager), ticket.id, "First")
        await service.append_comment(Principal.from_user(test_designer), ticket.id, "Second")
        await service.append_comment(Principal.from_user(test_manager), ticket.id, "Third")

        review = await service.get_review(Principal.from_user(test_manager), ticket.id)
        assert [c.text for c in review.comments] == ["First", "Second", "Third"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_comment_rejected(self, db_session, test_manager, test_project, text):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session)
        await service.append_comment(principal, ticket.id, "Existing")

        with pytest.raises(ValidationError):
            await service.append_comment(principal, ticket.id, text)

        review = await service.get_review(principal, ticket.id)
        assert len(review.comments) == 1

    @pytest.mark.asyncio
    async def test_unassigned_designer_cannot_comment(
        self, db_session, test_manager, test_designer, test_project
    ):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)

        with pytest.raises(AuthorizationError):
            await ReviewLogService(db_session).append_comment(
                Principal.from_user(test_designer), ticket.id, "Hi"
            )

    @pytest.mark.asyncio
    async def test_foreign_principal_gets_not_found(
        self, db_session, test_manager, test_project, foreign_admin
    ):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)

        with pytest.raises(TicketNotFoundError):
            await ReviewLogService(db_session).append_comment(
                Principal.from_user(foreign_admin), ticket.id, "Hi"
            )

    @pytest.mark.asyncio
    async def test_annotation_does_not_move_ticket(self, db_session, test_manager, test_project):
        """The annotation records what the author reports, nothing more."""
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, status=TicketStatus.REVIEW
        )

        comment = await ReviewLogService(db_session).append_comment(
            Principal.from_user(test_manager),
            ticket.id,
            "Approved offline",
            status_change=StatusChange(TicketStatus.REVIEW, TicketStatus.DONE),
        )

        assert comment.is_status_change is True
        assert comment.status_change_from == "Review"
        assert comment.status_change_to == "Done"
        assert ticket.status == TicketStatus.REVIEW

    @pytest.mark.asyncio
    async def test_comment_attachments_round_trip(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session)
        payload = bytes(range(256)) * 4

        comment = await service.append_comment(
            principal,
            ticket.id,
            "See markup",
            attachments=[AttachmentUpload("markup.png", "image/png", payload)],
        )

        assert [(a.filename, a.size_bytes) for a in comment.attachments] == [("markup.png", 1024)]

        content = await service.fetch_comment_attachment(
            principal, ticket.id, comment.id, comment.attachments[0].id
        )
        assert content.payload == payload
        assert content.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_comment_ceiling_applies(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)

        with pytest.raises(AttachmentTooLargeError):
            await ReviewLogService(db_session, max_attachment_bytes=3).append_comment(
                Principal.from_user(test_manager),
                ticket.id,
                "Too big",
                attachments=[AttachmentUpload("a.bin", "application/octet-stream", b"abcd")],
            )


class TestCommentWithStatusChange:
    """Tests for the combined status change and comment."""

    @pytest.mark.asyncio
    async def test_moves_ticket_and_logs_both_statuses(
        self, db_session, test_manager, test_designer, test_project
    ):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager,
            assigned_to=test_designer, status=TicketStatus.IN_PROGRESS,
        )

        updated, comment = await ReviewLogService(db_session).comment_with_status_change(
            Principal.from_user(test_designer), ticket.id, "Ready for review", TicketStatus.REVIEW
        )

        assert updated.status == TicketStatus.REVIEW
        assert comment.is_status_change is True
        assert comment.status_change_from == "InProgress"
        assert comment.status_change_to == "Review"

    @pytest.mark.asyncio
    async def test_forbidden_move_logs_nothing(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(
            db_session, test_project, test_manager, status=TicketStatus.DONE
        )
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session, transitions=StatusTransitionPolicy({"Done": []}))

        with pytest.raises(InvalidStateTransitionError):
            await service.comment_with_status_change(principal, ticket.id, "Reopen", TicketStatus.OPEN)

        assert ticket.status == TicketStatus.DONE
        assert await service.get_review(principal, ticket.id) is None

    @pytest.mark.asyncio
    async def test_blank_text_leaves_status(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)

        with pytest.raises(ValidationError):
            await ReviewLogService(db_session).comment_with_status_change(
                Principal.from_user(test_manager), ticket.id, " ", TicketStatus.DONE
            )

        assert ticket.status == TicketStatus.OPEN


class TestFetchCommentAttachment:
    """Tests for comment attachment lookup."""

    @pytest.mark.asyncio
    async def test_comment_of_other_ticket_not_found(self, db_session, test_manager, test_project):
        first = await TicketFactory.create(db_session, test_project, test_manager)
        second = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session)
        comment = await service.append_comment(
            principal, first.id, "Files", attachments=[AttachmentUpload("a.txt", "text/plain", b"a")]
        )

        with pytest.raises(CommentNotFoundError):
            await service.fetch_comment_attachment(
                principal, second.id, comment.id, comment.attachments[0].id
            )

    @pytest.mark.asyncio
    async def test_unknown_attachment_not_found(self, db_session, test_manager, test_project):
        ticket = await TicketFactory.create(db_session, test_project, test_manager)
        principal = Principal.from_user(test_manager)
        service = ReviewLogService(db_session)
        comment = await service.append_comment(principal, ticket.id, "No files")

        with pytest.raises(AttachmentNotFoundError):
            await service.fetch_comment_attachment(principal, ticket.id, comment.id, 999)
