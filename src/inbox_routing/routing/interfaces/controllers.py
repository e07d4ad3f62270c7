"""
Routing Controllers (API Routes)
=================================

FastAPI routes for supervisor takeover/release and team-category mappings.

Takeover and release take the raw request context: the coordinator checks
the feature flag before the caller's role.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.config import MemberRole
from inbox_routing.conversations.application import (
    AuditRecorder,
    ConversationDTO,
    ThreadResponse,
)
from inbox_routing.conversations.infrastructure import (
    SQLAlchemyConversationEventRepository,
    SQLAlchemyConversationRepository,
)
from inbox_routing.infrastructure.database import get_session
from inbox_routing.routing.application import (
    ConversationRouter,
    MappingsRequest,
    MappingsResponse,
    MappingView,
    RoutingCategoryMapper,
    TakeoverCoordinator,
)
from inbox_routing.routing.infrastructure import (
    SQLAlchemyTeamCategoryRepository,
    SQLAlchemyTeamDirectory,
    SQLRoundRobinAssignmentResolver,
)
from inbox_routing.shared.api.deps import (
    RequestContext,
    get_request_context,
    get_skill_routing_enabled,
    get_supervisor_takeover_enabled,
    require_workspace_role,
)
from inbox_routing.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/threads", tags=["Supervisor Takeover"])
mappings_router = APIRouter(prefix="/routing", tags=["Routing"])


# ========== Example payloads for Swagger ==========

MAPPINGS_REQUEST_EXAMPLE = {
    "mappings": [
        {"team_id": "3f0c2a56-1b7e-4d8e-9a0f-5c6d7e8f9a01", "category_id": "b2d4f6a8-0c1e-4a3b-8d5f-7e9a1c3b5d70", "is_active": True},
    ]
}


# ========== Dependencies ==========

async def get_takeover_coordinator(
    session: AsyncSession = Depends(get_session),
    takeover_enabled: bool = Depends(get_supervisor_takeover_enabled),
) -> TakeoverCoordinator:
    return TakeoverCoordinator(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyTeamDirectory(session),
        SQLRoundRobinAssignmentResolver(session),
        AuditRecorder(SQLAlchemyConversationEventRepository(session)),
        takeover_enabled=takeover_enabled,
    )


async def get_category_mapper(
    session: AsyncSession = Depends(get_session),
) -> RoutingCategoryMapper:
    return RoutingCategoryMapper(
        SQLAlchemyTeamDirectory(session),
        SQLAlchemyTeamCategoryRepository(session),
    )


async def get_conversation_router(
    session: AsyncSession = Depends(get_session),
    skill_routing_enabled: bool = Depends(get_skill_routing_enabled),
) -> ConversationRouter:
    """Router for ingestion handlers that place new and inbound conversations."""
    return ConversationRouter(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyTeamDirectory(session),
        SQLAlchemyTeamCategoryRepository(session),
        SQLRoundRobinAssignmentResolver(session),
        AuditRecorder(SQLAlchemyConversationEventRepository(session)),
        skill_routing_enabled=skill_routing_enabled,
    )


# ========== Route Handlers ==========

@router.post(
    "/{conversation_id}/takeover",
    response_model=ThreadResponse,
    summary="Take over a conversation",
    description="""
    The acting supervisor becomes the owner; the current owner is remembered
    for release.

    Errors: `feature_disabled`, `forbidden`, `conversation_not_found`,
    `already_taken_over` (409), `member_not_found`.
    """,
)
async def takeover_thread(
    conversation_id: str,
    context: RequestContext = Depends(get_request_context),
    coordinator: TakeoverCoordinator = Depends(get_takeover_coordinator),
):
    conversation = await coordinator.takeover(
        context.workspace_id, conversation_id, context.user_id, context.role
    )
    return ThreadResponse(thread=ConversationDTO.from_domain(conversation))


@router.post(
    "/{conversation_id}/release",
    response_model=ThreadResponse,
    summary="Release a takeover",
    description="""
    Restores the remembered owner when still active and on the
    conversation's team; otherwise the conversation goes back to
    round-robin within its team. A round-robin failure leaves the
    conversation unassigned and does not fail the release.

    Errors: `feature_disabled`, `forbidden`, `conversation_not_found`,
    `not_taken_over`.
    """,
)
async def release_thread(
    conversation_id: str,
    context: RequestContext = Depends(get_request_context),
    coordinator: TakeoverCoordinator = Depends(get_takeover_coordinator),
):
    conversation = await coordinator.release(
        context.workspace_id, conversation_id, context.user_id, context.role
    )
    return ThreadResponse(thread=ConversationDTO.from_domain(conversation))


@mappings_router.get(
    "/team-categories",
    response_model=MappingsResponse,
    summary="List team ↔ category mappings",
)
async def list_team_categories(
    context: RequestContext = Depends(require_workspace_role(MemberRole.ADMIN)),
    mapper: RoutingCategoryMapper = Depends(get_category_mapper),
):
    details = await mapper.list_mappings(context.workspace_id)
    return MappingsResponse(mappings=[MappingView.from_details(d) for d in details])


@mappings_router.post(
    "/team-categories",
    response_model=MappingsResponse,
    summary="Create or update team ↔ category mappings",
    description="""
    Body is `{"mapping": {...}}` or `{"mappings": [...]}`. Mappings that
    reference a team or category outside the workspace are dropped; if none
    remain the request fails with `invalid_mappings`.
    """,
)
async def save_team_categories(
    payload: Any = Body(default=None, examples=[MAPPINGS_REQUEST_EXAMPLE]),
    context: RequestContext = Depends(require_workspace_role(MemberRole.ADMIN)),
    mapper: RoutingCategoryMapper = Depends(get_category_mapper),
):
    mappings = MappingsRequest.parse_payload(payload)
    details = await mapper.save_mappings(context.workspace_id, mappings)
    logger.info(
        "Team categories saved",
        extra={"workspace_id": context.workspace_id, "submitted": len(mappings)},
    )
    return MappingsResponse(mappings=[MappingView.from_details(d) for d in details])
