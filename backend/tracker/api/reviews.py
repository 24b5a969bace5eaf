"""
Review API endpoints.

WHAT: Read the review log of a ticket, append comments (optionally with
files), change status with a comment, and download comment attachments.

HOW: Comment endpoints accept either a JSON body or multipart form data.
Multipart carries the same fields as form fields plus any number of
`files`; a status-change annotation is sent as `status_change_from` and
`status_change_to`.
"""

from typing import Any, Dict, List, Tuple, Type, TypeVar

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from tracker.api.tickets import file_response, ticket_to_response
from tracker.core.config import settings
from tracker.core.deps import get_current_principal
from tracker.core.exceptions import ValidationError
from tracker.core.permissions import Principal
from tracker.db.session import get_db
from tracker.schemas.review import (
    CommentCreate,
    CommentResponse,
    ReviewResponse,
    StatusChangeCommentCreate,
    StatusChangeResponse,
)
from tracker.services.attachments import AttachmentUpload, read_uploads
from tracker.services.review_log import ReviewLogService, StatusChange


router = APIRouter(prefix="/reviews", tags=["reviews"])

SchemaT = TypeVar("SchemaT", bound=BaseModel)


async def parse_comment_request(
    request: Request,
    schema: Type[SchemaT],
) -> Tuple[SchemaT, List[AttachmentUpload]]:
    """
    Parse a JSON or multipart comment request.

    WHY: Attachments are read and size-checked here, at the boundary,
    against the comment ceiling.

    Raises:
        ValidationError: If the body is malformed, a file is invalid or
            sent under a field other than `files`
        AttachmentTooLargeError: If a file exceeds the comment ceiling
    """
    content_type = request.headers.get("content-type", "")
    files: List[StarletteUploadFile] = []

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        fields: Dict[str, Any] = {
            key: value for key, value in form.multi_items() if isinstance(value, str)
        }
        stray = sorted(
            {
                key
                for key, value in form.multi_items()
                if isinstance(value, StarletteUploadFile) and key != "files"
            }
        )
        if stray:
            raise ValidationError(
                message=f"Files must be sent in the 'files' field, got: {', '.join(stray)}",
                fields=stray,
            )
        files = [value for value in form.getlist("files") if isinstance(value, StarletteUploadFile)]

        change_from = fields.pop("status_change_from", None)
        change_to = fields.pop("status_change_to", None)
        if change_from or change_to:
            fields["status_change"] = {"from": change_from, "to": change_to}
        body: Any = fields
    else:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError(message="Request body must be JSON or multipart form data")

    try:
        data = schema.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(
            message="Request validation failed",
            errors=[
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in e.errors()
            ],
        )

    uploads = await read_uploads(files, settings.COMMENT_ATTACHMENT_MAX_BYTES)
    return data, uploads


@router.get(
    "/ticket/{ticket_id}",
    response_model=ReviewResponse,
    summary="Get review log",
    description="Comments in insertion order with attachment metadata",
)
async def get_review(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    review = await ReviewLogService(db).get_review(principal, ticket_id)
    if review is None:
        return ReviewResponse(ticket_id=ticket_id)
    return ReviewResponse.model_validate(review)


@router.post(
    "/ticket/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    ticket_id: int,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    """
    Append a comment to the review log.

    WHY: A status_change here is an annotation only; use
    /status-change to actually move the ticket.
    """
    data, uploads = await parse_comment_request(request, CommentCreate)

    status_change = None
    if data.status_change is not None:
        status_change = StatusChange(
            from_status=data.status_change.from_status,
            to_status=data.status_change.to_status,
        )

    comment = await ReviewLogService(db).append_comment(
        principal,
        ticket_id,
        data.text,
        attachments=uploads,
        status_change=status_change,
    )
    return CommentResponse.model_validate(comment)


@router.post(
    "/ticket/{ticket_id}/status-change",
    response_model=StatusChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Change status with a comment",
    description="Move the ticket and log an annotated comment in one transaction",
)
async def change_status_with_comment(
    ticket_id: int,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> StatusChangeResponse:
    data, uploads = await parse_comment_request(request, StatusChangeCommentCreate)

    ticket, comment = await ReviewLogService(db).comment_with_status_change(
        principal,
        ticket_id,
        data.text,
        data.status,
        attachments=uploads,
    )
    return StatusChangeResponse(
        ticket=ticket_to_response(ticket),
        comment=CommentResponse.model_validate(comment),
    )


@router.get(
    "/ticket/{ticket_id}/comments/{comment_id}/attachments/{attachment_id}",
    summary="Download comment attachment",
    response_class=Response,
)
async def download_comment_attachment(
    ticket_id: int,
    comment_id: int,
    attachment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    content = await ReviewLogService(db).fetch_comment_attachment(
        principal, ticket_id, comment_id, attachment_id
    )
    return file_response(content)
