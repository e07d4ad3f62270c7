"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain objects and repositories.

- EscalationRecorder: idempotent persistence of breached deadlines
- SLARecomputationService: load → calculate → persist → escalate
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from inbox_routing.config import (
    BreachType, SLAStatus,
    ACTIVE_TICKET_STATUSES, DEFAULT_TICKET_STATUS,
)
from inbox_routing.conversations.domain import IConversationRepository
from inbox_routing.core import ApplicationException, ResourceNotFoundException
from inbox_routing.shared.infrastructure.clock import utc_now
from inbox_routing.shared.infrastructure.logging import get_logger
from inbox_routing.sla.domain import Escalation, SLACalculator, SLAComputation, SLAPolicy

logger = get_logger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# ========== Repository Interfaces (Dependency Inversion) ==========

class IEscalationRepository(ABC):
    """Interface for escalation data access."""

    @abstractmethod
    async def insert_ignore_duplicates(self, escalations: List[Escalation]) -> int:
        """
        Insert escalations; rows whose ``(conversation_id, breach_type, due_at)``
        already exists are skipped without error.

        Returns:
            Number of rows actually inserted
        """

    @abstractmethod
    async def list_for_conversation(self, conversation_id: str) -> List[Escalation]:
        """Escalations of a conversation, latest due first."""


class ISLAPolicyProvider(ABC):
    """Interface for SLA policy access."""

    @abstractmethod
    def get_policy(self) -> SLAPolicy:
        """Get the current SLA policy."""


# ========== Value objects for the service API ==========

@dataclass
class SLAOverrides:
    """
    Values to use instead of the persisted ones.

    ``None`` for priority/ticket_status means "use the stored value".
    ``last_customer_message_at`` distinguishes not given (UNSET) from an
    explicit value; an explicit value is also persisted.
    """
    priority: Optional[str] = None
    ticket_status: Optional[str] = None
    last_customer_message_at: Any = UNSET

    @property
    def has_last_customer_message_at(self) -> bool:
        return self.last_customer_message_at is not UNSET


@dataclass
class SweepResult:
    evaluated: int = 0
    failed: int = 0
    breached: int = 0


# ========== Application Services ==========

class EscalationRecorder:
    """Persists breached deadlines, at most once per deadline."""

    def __init__(self, escalation_repository: IEscalationRepository):
        self._escalation_repo = escalation_repository

    @staticmethod
    def breaches(
        conversation_id: str,
        computed: SLAComputation,
        now: datetime
    ) -> List[Escalation]:
        """Escalations for every deadline strictly before ``now``."""
        deadlines = (
            (BreachType.NEXT_RESPONSE, computed.next_response_due_at),
            (BreachType.RESOLUTION, computed.resolution_due_at),
        )
        return [
            Escalation.for_breach(conversation_id, breach_type, due_at)
            for breach_type, due_at in deadlines
            if SLACalculator.is_overdue(due_at, now)
        ]

    async def record(
        self,
        conversation_id: str,
        computed: SLAComputation,
        now: datetime
    ) -> List[Escalation]:
        escalations = self.breaches(conversation_id, computed, now)
        if not escalations:
            return []

        inserted = await self._escalation_repo.insert_ignore_duplicates(escalations)
        if inserted:
            logger.warning(
                "SLA breach escalated",
                extra={
                    "conversation_id": conversation_id,
                    "breach_types": [e.breach_type for e in escalations],
                    "inserted": inserted,
                },
            )
        return escalations


class SLARecomputationService:
    """
    Recomputes and persists a conversation's SLA due dates and status.

    Invoked when a customer message arrives, when priority or ticket status
    changes, and by the external sweep.
    """

    def __init__(
        self,
        conversation_repository: IConversationRepository,
        escalation_repository: IEscalationRepository,
        policy_provider: ISLAPolicyProvider,
        clock: Callable[[], datetime] = utc_now
    ):
        self._conversation_repo = conversation_repository
        self._escalations = EscalationRecorder(escalation_repository)
        self._escalation_repo = escalation_repository
        self._policy_provider = policy_provider
        self._clock = clock

    async def recompute(
        self,
        workspace_id: str,
        conversation_id: str,
        overrides: Optional[SLAOverrides] = None
    ) -> SLAComputation:
        """
        Recompute SLA fields for one conversation.

        Raises:
            ResourceNotFoundException: If the conversation is not in the workspace
            RepositoryException: If the store fails
        """
        overrides = overrides or SLAOverrides()

        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            raise ResourceNotFoundException("conversation", conversation_id)

        if overrides.has_last_customer_message_at:
            explicit_last = SLACalculator.parse_timestamp(overrides.last_customer_message_at)
        else:
            explicit_last = None
        last_customer_message_at = (
            explicit_last
            or conversation.last_customer_message_at
            or conversation.last_message_at
        )
        priority = overrides.priority or conversation.priority
        ticket_status = overrides.ticket_status or conversation.ticket_status

        now = self._clock()
        computed = SLACalculator.compute_sla(
            priority=priority,
            ticket_status=ticket_status,
            last_customer_message_at=last_customer_message_at,
            now=now,
            policy=self._policy_provider.get_policy(),
        )

        patch: Dict[str, Any] = computed.to_dict()
        if overrides.has_last_customer_message_at:
            patch["last_customer_message_at"] = explicit_last

        updated = await self._conversation_repo.update_fields(workspace_id, conversation_id, patch)
        if not updated:
            raise ResourceNotFoundException("conversation", conversation_id)

        effective_status = ticket_status or DEFAULT_TICKET_STATUS
        if effective_status in ACTIVE_TICKET_STATUSES:
            await self._escalations.record(conversation_id, computed, now)

        logger.debug(
            "SLA recomputed",
            extra={
                "workspace_id": workspace_id,
                "conversation_id": conversation_id,
                "sla_status": computed.sla_status,
            },
        )
        return computed

    async def record_customer_message(
        self,
        workspace_id: str,
        conversation_id: str,
        received_at: datetime
    ) -> SLAComputation:
        """Restart the SLA clock from an inbound customer message."""
        return await self.recompute(
            workspace_id,
            conversation_id,
            SLAOverrides(last_customer_message_at=received_at),
        )

    async def recompute_workspace(self, workspace_id: str) -> SweepResult:
        """
        Recompute every open or pending conversation of a workspace.

        A failure on one conversation is logged and counted; the sweep
        carries on with the rest.
        """
        result = SweepResult()
        conversation_ids = await self._conversation_repo.list_ids_by_status(
            workspace_id, ACTIVE_TICKET_STATUSES
        )

        for conversation_id in conversation_ids:
            try:
                async with self._conversation_repo.isolated():
                    computed = await self.recompute(workspace_id, conversation_id)
            except ApplicationException as e:
                result.failed += 1
                logger.warning(
                    "SLA recompute failed",
                    extra={
                        "workspace_id": workspace_id,
                        "conversation_id": conversation_id,
                        "error": e.message,
                    },
                )
                continue

            result.evaluated += 1
            if computed.sla_status == SLAStatus.BREACHED:
                result.breached += 1

        return result

    async def list_escalations(
        self,
        workspace_id: str,
        conversation_id: str
    ) -> List[Escalation]:
        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            raise ResourceNotFoundException("conversation", conversation_id)
        return await self._escalation_repo.list_for_conversation(conversation_id)
