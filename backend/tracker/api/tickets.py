"""
Ticket API endpoints.

WHAT: RESTful API for tickets, their checklists, attachments and the
link to the designer's document.

WHY: The UI embedded in the host editor drives the whole ticket board
through these routes.

HOW: FastAPI router; every handler resolves the Principal, delegates to
a service, and converts the result into a response schema. Services
raise AppException subclasses that the global handlers translate.
"""

from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.config import settings
from tracker.core.deps import get_current_principal
from tracker.core.permissions import Principal
from tracker.db.session import get_db
from tracker.models.ticket import Ticket, TicketStatus
from tracker.schemas.ticket import (
    ExpressLinkUpdate,
    TicketAttachmentResponse,
    TicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketStatusUpdate,
    TicketUpdate,
    TodoBulkCreate,
    TodoCreate,
    TodoSuggestionResponse,
)
from tracker.services.attachments import AttachmentContent, AttachmentRegistry, read_uploads
from tracker.services.checklist import ChecklistService
from tracker.services.checklist_suggestions import (
    ChecklistSuggestionService,
    get_checklist_suggestion_service,
)
from tracker.services.ticket_lifecycle import TicketLifecycleService


router = APIRouter(prefix="/tickets", tags=["tickets"])


def ticket_to_response(ticket: Ticket) -> TicketResponse:
    """
    Convert Ticket model to TicketResponse schema.

    WHY: Reads the attachments collection only if it is already loaded,
    so a conversion can never trigger a lazy load in async context.
    """
    attachments = inspect(ticket).dict.get("attachments") or []
    return TicketResponse(
        id=ticket.id,
        org_id=ticket.org_id,
        project_id=ticket.project_id,
        title=ticket.title,
        description=ticket.description,
        status=ticket.status,
        assigned_to_user_id=ticket.assigned_to_user_id,
        created_by_user_id=ticket.created_by_user_id,
        todos=ticket.todos or [],
        attachments=[TicketAttachmentResponse.model_validate(a) for a in attachments],
        express_project_link=ticket.express_project_link,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


def file_response(content: AttachmentContent) -> Response:
    """Build a download response with the original content type."""
    return Response(
        content=content.payload,
        media_type=content.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(content.filename)}",
        },
    )


# ============================================================================
# Tickets
# ============================================================================


@router.get(
    "",
    response_model=TicketListResponse,
    status_code=status.HTTP_200_OK,
    summary="List tickets",
    description="Tickets of the caller's organization; designers see their own assignments",
)
async def list_tickets(
    project_id: Optional[int] = Query(default=None, alias="project", description="Filter by project ID"),
    status_filter: Optional[TicketStatus] = Query(default=None, alias="status", description="Filter by status"),
    skip: int = Query(default=0, ge=0, description="Number of items to skip"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum items to return"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketListResponse:
    tickets, total = await TicketLifecycleService(db).list_tickets(
        principal,
        project_id=project_id,
        status=status_filter,
        skip=skip,
        limit=limit,
    )
    return TicketListResponse(
        items=[ticket_to_response(ticket) for ticket in tickets],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="Create a ticket in one of the organization's projects (ADMIN, MANAGER)",
)
async def create_ticket(
    data: TicketCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    """
    Create a new ticket.

    Raises:
        ProjectNotFoundError (404): Project missing or in another organization
        AuthorizationError (403): Caller is a designer
        ValidationError (400): Blank title or assignee outside the organization
    """
    ticket = await TicketLifecycleService(db).create_ticket(
        principal,
        project_id=data.project_id,
        title=data.title,
        description=data.description,
        assigned_to_user_id=data.assigned_to_user_id,
        status=data.status,
    )
    return ticket_to_response(ticket)


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get ticket",
)
async def get_ticket(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketLifecycleService(db).get_ticket(principal, ticket_id)
    return ticket_to_response(ticket)


@router.put(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update ticket",
    description="Partial update of title, description, status and assignee",
)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    """
    Update a ticket.

    WHY: Only fields present in the body change. Designers may update
    tickets assigned to them but may not reassign them.
    """
    ticket = await TicketLifecycleService(db).update_ticket(
        principal,
        ticket_id,
        data.model_dump(exclude_unset=True),
    )
    return ticket_to_response(ticket)


@router.patch(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
)
async def change_ticket_status(
    ticket_id: int,
    data: TicketStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketLifecycleService(db).set_status(principal, ticket_id, data.status)
    return ticket_to_response(ticket)


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete ticket",
    description="Delete a ticket with its attachments and review log (ADMIN only)",
)
async def delete_ticket(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await TicketLifecycleService(db).delete_ticket(principal, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{ticket_id}/express-link",
    response_model=TicketResponse,
    summary="Update document link",
    description="Link the assigned designer's document in the host editor",
)
async def update_express_link(
    ticket_id: int,
    data: ExpressLinkUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketLifecycleService(db).update_express_link(principal, ticket_id, data.link)
    return ticket_to_response(ticket)


# ============================================================================
# Checklist
# ============================================================================


@router.post(
    "/{ticket_id}/todos",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add checklist item",
)
async def add_todo(
    ticket_id: int,
    data: TodoCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await ChecklistService(db).add_todo(principal, ticket_id, data.text)
    return ticket_to_response(ticket)


@router.post(
    "/{ticket_id}/todos/bulk",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add several checklist items",
)
async def add_todos(
    ticket_id: int,
    data: TodoBulkCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await ChecklistService(db).add_todos(principal, ticket_id, data.texts)
    return ticket_to_response(ticket)


@router.post(
    "/{ticket_id}/todos/suggestions",
    response_model=TodoSuggestionResponse,
    summary="Suggest checklist items",
    description="Ask the suggestion service for items; nothing is stored",
)
async def suggest_todos(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    suggestions: ChecklistSuggestionService = Depends(get_checklist_suggestion_service),
) -> TodoSuggestionResponse:
    items = await ChecklistService(db, suggestions).suggest_todos(principal, ticket_id)
    return TodoSuggestionResponse(suggestions=items)


@router.patch(
    "/{ticket_id}/todos/{index}",
    response_model=TicketResponse,
    summary="Toggle checklist item",
)
async def toggle_todo(
    ticket_id: int,
    index: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await ChecklistService(db).toggle_todo(principal, ticket_id, index)
    return ticket_to_response(ticket)


@router.delete(
    "/{ticket_id}/todos/{index}",
    response_model=TicketResponse,
    summary="Delete checklist item",
    description="Completed items cannot be deleted (409)",
)
async def delete_todo(
    ticket_id: int,
    index: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await ChecklistService(db).delete_todo(principal, ticket_id, index)
    return ticket_to_response(ticket)


# ============================================================================
# Attachments
# ============================================================================


@router.post(
    "/{ticket_id}/attachments",
    response_model=List[TicketAttachmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Upload attachments",
)
async def upload_attachments(
    ticket_id: int,
    files: List[UploadFile] = File(..., description="Files to attach"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> List[TicketAttachmentResponse]:
    """
    Attach files to a ticket.

    WHY: Files are size-checked while being read, before the ticket is
    even loaded.
    """
    uploads = await read_uploads(files, settings.TICKET_ATTACHMENT_MAX_BYTES)
    stored = await AttachmentRegistry(db).add_to_ticket(principal, ticket_id, uploads)
    return [TicketAttachmentResponse.model_validate(attachment) for attachment in stored]


@router.delete(
    "/{ticket_id}/attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete attachment",
)
async def delete_attachment(
    ticket_id: int,
    attachment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await AttachmentRegistry(db).remove_from_ticket(principal, ticket_id, attachment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{ticket_id}/files/{attachment_id}",
    summary="Download attachment",
    response_class=Response,
)
async def download_attachment(
    ticket_id: int,
    attachment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    content = await AttachmentRegistry(db).get_ticket_attachment(principal, ticket_id, attachment_id)
    return file_response(content)
