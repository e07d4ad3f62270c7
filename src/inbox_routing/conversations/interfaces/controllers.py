"""
Thread Controllers (API Routes)
================================

FastAPI routes for reading and patching conversations.

Controllers are thin - they delegate to application services.
"""

from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.config import SUPERVISOR_ROLES
from inbox_routing.conversations.application import (
    AuditRecorder,
    ConversationDTO,
    ConversationService,
    ThreadDetailResponse,
    ThreadListResponse,
    ThreadResponse,
    ThreadUpdateRequest,
)
from inbox_routing.conversations.infrastructure import (
    SQLAlchemyConversationEventRepository,
    SQLAlchemyConversationRepository,
)
from inbox_routing.infrastructure.database import get_session
from inbox_routing.routing.infrastructure import SQLAlchemyTeamDirectory
from inbox_routing.shared.api.deps import (
    RequestContext,
    get_supervisor_takeover_enabled,
    require_workspace_role,
)
from inbox_routing.shared.infrastructure.logging import get_logger
from inbox_routing.sla.application import SLARecomputationService
from inbox_routing.sla.interfaces.controllers import get_sla_service

logger = get_logger(__name__)
router = APIRouter(prefix="/threads", tags=["Threads"])


# ========== Example payloads for Swagger ==========

THREAD_UPDATE_EXAMPLE = {
    "ticketStatus": "pending",
    "priority": "high",
    "assignedTo": "8d1f6c1e-4a4b-4c55-9b1e-2a0f5e2c7d10",
}

THREAD_RESPONSE_EXAMPLE = {
    "thread": {
        "id": "0b6f3c2a-9d0e-4f7a-8a51-7c2d9e1b4f63",
        "contactId": "5e2a7d91-3c4b-4e8f-a0d2-6b1c9f8e7a54",
        "assignedTo": "8d1f6c1e-4a4b-4c55-9b1e-2a0f5e2c7d10",
        "assignedMemberId": "8d1f6c1e-4a4b-4c55-9b1e-2a0f5e2c7d10",
        "ticketStatus": "pending",
        "priority": "high",
        "unreadCount": 0,
        "lastMessageAt": "2024-01-15T10:05:00+00:00",
        "nextResponseDueAt": "2024-01-15T10:20:00+00:00",
        "resolutionDueAt": "2024-01-15T14:05:00+00:00",
        "slaStatus": "due_soon",
        "lastCustomerMessageAt": "2024-01-15T10:05:00+00:00",
        "isArchived": False,
        "pinned": False,
    }
}


# ========== Dependencies ==========

async def get_conversation_service(
    session: AsyncSession = Depends(get_session),
    sla_service: SLARecomputationService = Depends(get_sla_service),
) -> ConversationService:
    return ConversationService(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyTeamDirectory(session),
        sla_service,
        AuditRecorder(SQLAlchemyConversationEventRepository(session)),
    )


# ========== Route Handlers ==========

@router.get("", response_model=ThreadListResponse, summary="List conversations")
async def list_threads(
    status: Optional[Literal["open", "pending", "solved", "spam"]] = Query(default=None),
    priority: Optional[Literal["low", "med", "high", "urgent"]] = Query(default=None),
    agent: str = Query(default="all", description="'all', 'unassigned' or a member id"),
    archived: Optional[bool] = Query(default=None),
    pinned: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: ConversationService = Depends(get_conversation_service),
):
    filters = {
        "status": status,
        "priority": priority,
        "agent": agent,
        "archived": archived,
        "pinned": pinned,
    }
    conversations = await service.list(context.workspace_id, filters, limit, offset)
    return ThreadListResponse(items=[ConversationDTO.from_domain(c) for c in conversations])


@router.get("/{conversation_id}", response_model=ThreadDetailResponse, summary="Get a conversation")
async def get_thread(
    conversation_id: str,
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: ConversationService = Depends(get_conversation_service),
    takeover_enabled: bool = Depends(get_supervisor_takeover_enabled),
):
    conversation = await service.get(context.workspace_id, conversation_id)
    return ThreadDetailResponse(
        thread=ConversationDTO.from_domain(conversation),
        supervisorTakeoverEnabled=takeover_enabled,
    )


@router.post(
    "/{conversation_id}/update",
    response_model=ThreadResponse,
    summary="Patch a conversation",
    description="""
    Partial update. Every field is optional; camelCase and snake_case
    spellings are both accepted. Unknown keys are rejected.

    Changing `ticketStatus` or `priority` recomputes the SLA due dates
    before the thread is returned.

    Errors: `invalid_ticket_status`, `invalid_priority`, `no_fields`,
    `unknown_field`, `invalid_assignee`, `invalid_team`.
    """,
    responses={200: {"content": {"application/json": {"example": THREAD_RESPONSE_EXAMPLE}}}},
)
async def update_thread(
    conversation_id: str,
    payload: Any = Body(default=None, examples=[THREAD_UPDATE_EXAMPLE]),
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: ConversationService = Depends(get_conversation_service),
):
    request = ThreadUpdateRequest.parse_payload(payload)
    conversation = await service.update(
        context.workspace_id,
        conversation_id,
        request,
        acting_user_id=context.user_id,
    )
    return ThreadResponse(thread=ConversationDTO.from_domain(conversation))
