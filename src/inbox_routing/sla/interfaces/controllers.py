"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA recomputation and escalations.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.config import SUPERVISOR_ROLES
from inbox_routing.conversations.infrastructure import SQLAlchemyConversationRepository
from inbox_routing.infrastructure.database import get_session
from inbox_routing.shared.api.deps import RequestContext, require_workspace_role
from inbox_routing.shared.infrastructure.logging import get_logger, log_latency
from inbox_routing.sla.application import (
    EscalationListResponse,
    EscalationResponse,
    ISLAPolicyProvider,
    SLARecomputationService,
    SLAResponse,
    SweepResponse,
)
from inbox_routing.sla.infrastructure import (
    SQLAlchemyEscalationRepository,
    StaticSLAPolicyProvider,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Example payloads for Swagger ==========

SLA_RESPONSE_EXAMPLE = {
    "nextResponseDueAt": "2024-01-15T10:30:00+00:00",
    "resolutionDueAt": "2024-01-15T14:00:00+00:00",
    "slaStatus": "due_soon",
}

SWEEP_RESPONSE_EXAMPLE = {"evaluated": 42, "failed": 0, "breached": 3}


# ========== Dependencies ==========

def get_policy_provider(request: Request) -> ISLAPolicyProvider:
    """The hot-reloaded policy set up at startup, or the built-in table."""
    provider = getattr(request.app.state, "sla_policy", None)
    return provider if provider is not None else StaticSLAPolicyProvider()


async def get_sla_service(
    session: AsyncSession = Depends(get_session),
    policy_provider: ISLAPolicyProvider = Depends(get_policy_provider),
) -> SLARecomputationService:
    return SLARecomputationService(
        SQLAlchemyConversationRepository(session),
        SQLAlchemyEscalationRepository(session),
        policy_provider,
    )


# ========== Route Handlers ==========

@router.post(
    "/threads/{conversation_id}/recompute",
    response_model=SLAResponse,
    summary="Recompute one conversation's SLA",
    responses={200: {"content": {"application/json": {"example": SLA_RESPONSE_EXAMPLE}}}},
)
async def recompute_thread(
    conversation_id: str,
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: SLARecomputationService = Depends(get_sla_service),
):
    computed = await service.recompute(context.workspace_id, conversation_id)
    return SLAResponse.from_computation(computed)


@router.get(
    "/threads/{conversation_id}/escalations",
    response_model=EscalationListResponse,
    summary="List escalations of a conversation",
)
async def list_escalations(
    conversation_id: str,
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: SLARecomputationService = Depends(get_sla_service),
):
    escalations = await service.list_escalations(context.workspace_id, conversation_id)
    return EscalationListResponse(
        escalations=[EscalationResponse.from_domain(e) for e in escalations]
    )


@router.post(
    "/recompute",
    response_model=SweepResponse,
    summary="Recompute every open or pending conversation",
    description="""
    Re-evaluates the SLA clock of every open or pending conversation in the
    workspace and escalates deadlines that have passed. Intended to be called
    on a timer so breaches surface even when no new message arrives.

    A conversation that fails is counted in `failed`; the sweep continues.
    """,
    responses={200: {"content": {"application/json": {"example": SWEEP_RESPONSE_EXAMPLE}}}},
)
async def recompute_workspace(
    context: RequestContext = Depends(require_workspace_role(*SUPERVISOR_ROLES)),
    service: SLARecomputationService = Depends(get_sla_service),
):
    with log_latency(logger, "sla_sweep", workspace_id=context.workspace_id):
        result = await service.recompute_workspace(context.workspace_id)

    logger.info(
        "SLA sweep complete",
        extra={
            "workspace_id": context.workspace_id,
            "evaluated": result.evaluated,
            "failed": result.failed,
            "breached": result.breached,
        },
    )
    return SweepResponse(evaluated=result.evaluated, failed=result.failed, breached=result.breached)
