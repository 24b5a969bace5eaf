"""
Attachment registry.

WHAT: Reads uploads at the request boundary and stores, removes and serves
files attached to tickets.

WHY: Binary payloads live in the database next to their metadata. Two
rules keep that affordable:
1. Size ceilings are enforced while reading the upload, before any
   business logic runs (tickets 4 MB, comments 10 MB, gallery 5 MB)
2. Payloads are only read by the explicit download operations; lists and
   detail views carry metadata only

Comment attachments are stored through ReviewLogService and are never
removed on their own.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.config import settings
from tracker.core.exceptions import (
    AttachmentNotFoundError,
    AttachmentTooLargeError,
    ValidationError,
)
from tracker.core.permissions import Action, Principal, require
from tracker.dao.ticket import TicketAttachmentDAO
from tracker.models.ticket import TicketAttachment
from tracker.services.ticket_lifecycle import TicketLifecycleService

logger = logging.getLogger(__name__)


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Sizes of the filename and content_type columns
MAX_FILENAME_LENGTH = 255
MAX_CONTENT_TYPE_LENGTH = 255


@dataclass
class AttachmentUpload:
    """A file read from a request, not yet stored."""

    filename: str
    content_type: str
    payload: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def as_tuple(self):
        return self.filename, self.content_type, self.payload


@dataclass
class AttachmentContent:
    """Payload and metadata returned by a download."""

    filename: str
    content_type: str
    payload: bytes


def _megabytes(size: int) -> str:
    return f"{size / (1024 * 1024):g} MB"


def fit_filename(filename: str) -> str:
    """
    Shorten a filename to the column size, keeping its extension.

    Example:
        fit_filename("a" * 300 + ".png")  # 251 x "a" + ".png"
    """
    if len(filename) <= MAX_FILENAME_LENGTH:
        return filename
    stem, dot, extension = filename.rpartition(".")
    if not dot or not stem or len(extension) >= MAX_FILENAME_LENGTH // 2:
        return filename[:MAX_FILENAME_LENGTH]
    return stem[: MAX_FILENAME_LENGTH - len(extension) - 1] + "." + extension


def check_upload(upload: AttachmentUpload, max_bytes: int) -> AttachmentUpload:
    """
    Validate an upload against a ceiling.

    HOW: Over-long filenames are shortened in place so they fit their
    column. A content type that long is not a real MIME type and is
    rejected.

    Raises:
        ValidationError: If the file is empty or its content type is too long
        AttachmentTooLargeError: If the file exceeds max_bytes
    """
    upload.filename = fit_filename(upload.filename)
    if len(upload.content_type) > MAX_CONTENT_TYPE_LENGTH:
        raise ValidationError(
            message=f"File '{upload.filename}' has an invalid content type",
            filename=upload.filename,
        )
    if upload.size_bytes == 0:
        raise ValidationError(message=f"File '{upload.filename}' is empty", filename=upload.filename)
    if upload.size_bytes > max_bytes:
        raise AttachmentTooLargeError(
            message=f"File '{upload.filename}' exceeds the {_megabytes(max_bytes)} limit",
            filename=upload.filename,
            max_bytes=max_bytes,
        )
    return upload


async def read_upload(upload: UploadFile, max_bytes: int) -> AttachmentUpload:
    """
    Read a multipart upload, refusing files over the ceiling.

    HOW: Reads at most max_bytes + 1 bytes, so an oversized file is
    detected without buffering all of it.

    Raises:
        ValidationError: If the file is empty
        AttachmentTooLargeError: If the file exceeds max_bytes
    """
    payload = await upload.read(max_bytes + 1)
    return check_upload(
        AttachmentUpload(
            filename=upload.filename or "upload",
            content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
            payload=payload,
        ),
        max_bytes,
    )


async def read_uploads(uploads: Sequence[UploadFile], max_bytes: int) -> List[AttachmentUpload]:
    """Read several uploads with the same ceiling."""
    return [await read_upload(upload, max_bytes) for upload in uploads]


class AttachmentRegistry:
    """
    Service for ticket attachments.

    Usage:
        registry = AttachmentRegistry(db)
        stored = await registry.add_to_ticket(principal, ticket_id, uploads)
    """

    def __init__(self, session: AsyncSession, max_bytes: Optional[int] = None):
        self.session = session
        self.lifecycle = TicketLifecycleService(session)
        self.attachment_dao = TicketAttachmentDAO(session)
        self.max_bytes = max_bytes or settings.TICKET_ATTACHMENT_MAX_BYTES

    async def add_to_ticket(
        self,
        principal: Principal,
        ticket_id: int,
        uploads: Sequence[AttachmentUpload],
    ) -> List[TicketAttachment]:
        """
        Store uploaded files on a ticket.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If AddAttachment is denied
            ValidationError: If no file was sent or a file is empty
            AttachmentTooLargeError: If a file exceeds the ticket ceiling
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.ADD_ATTACHMENT, ticket)

        if not uploads:
            raise ValidationError(message="No files uploaded", field="files")
        for upload in uploads:
            check_upload(upload, self.max_bytes)

        stored = []
        for upload in uploads:
            stored.append(
                await self.attachment_dao.create(
                    ticket_id=ticket.id,
                    uploaded_by_user_id=principal.id,
                    filename=upload.filename,
                    content_type=upload.content_type,
                    payload=upload.payload,
                )
            )

        ticket.touch()
        await self.session.flush()

        logger.info(
            f"Ticket {ticket.id}: {len(stored)} attachment(s) added by user {principal.id}"
        )
        return stored

    async def remove_from_ticket(
        self,
        principal: Principal,
        ticket_id: int,
        attachment_id: int,
    ) -> None:
        """
        Delete one attachment from a ticket.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AuthorizationError: If DeleteAttachment is denied
            AttachmentNotFoundError: If the attachment is not on this ticket
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)
        require(principal, Action.DELETE_ATTACHMENT, ticket)

        deleted = await self.attachment_dao.delete(ticket.id, attachment_id)
        if not deleted:
            raise AttachmentNotFoundError(attachment_id=attachment_id)

        ticket.touch()
        await self.session.flush()

        logger.info(
            f"Ticket {ticket.id}: attachment {attachment_id} deleted by user {principal.id}"
        )

    async def get_ticket_attachment(
        self,
        principal: Principal,
        ticket_id: int,
        attachment_id: int,
    ) -> AttachmentContent:
        """
        Fetch the bytes of a ticket attachment.

        Raises:
            TicketNotFoundError: If the ticket is missing or out of scope
            AttachmentNotFoundError: If the attachment is not on this ticket
        """
        ticket = await self.lifecycle.load_ticket(principal, ticket_id)

        row = await self.attachment_dao.get_payload(ticket.id, attachment_id)
        if row is None:
            raise AttachmentNotFoundError(attachment_id=attachment_id)

        filename, content_type, payload = row
        return AttachmentContent(filename=filename, content_type=content_type, payload=payload)
