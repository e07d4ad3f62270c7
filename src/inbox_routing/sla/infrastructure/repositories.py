"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the SLA repository interfaces using SQLAlchemy.
"""

from typing import List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.infrastructure.database import is_uuid, store_error
from inbox_routing.shared.infrastructure.clock import utc_now
from inbox_routing.sla.application import IEscalationRepository, ISLAPolicyProvider
from inbox_routing.sla.domain import Escalation, SLAPolicy
from inbox_routing.sla.infrastructure.models import EscalationModel

_DEADLINE_COLUMNS = ["conversation_id", "breach_type", "due_at"]


class SQLAlchemyEscalationRepository(IEscalationRepository):
    """
    SQLAlchemy implementation of the escalation repository.

    Inserts go through ``INSERT ... ON CONFLICT DO NOTHING`` on the deadline
    key, so two concurrent recomputes of the same conversation cannot both
    escalate the same deadline.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def insert_ignore_duplicates(self, escalations: List[Escalation]) -> int:
        if not escalations:
            return 0

        now = utc_now()
        rows = [
            {
                "id": str(uuid4()),
                "conversation_id": e.conversation_id,
                "breach_type": e.breach_type,
                "due_at": e.due_at,
                "reason": e.reason,
                "created_at": now,
            }
            for e in escalations
        ]
        stmt = (
            pg_insert(EscalationModel)
            .values(rows)
            .on_conflict_do_nothing(index_elements=_DEADLINE_COLUMNS)
            .returning(EscalationModel.id)
        )

        try:
            result = await self._session.execute(stmt)
            inserted = result.scalars().all()
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return len(inserted)

    async def list_for_conversation(self, conversation_id: str) -> List[Escalation]:
        if not is_uuid(conversation_id):
            return []

        stmt = (
            select(EscalationModel)
            .where(EscalationModel.conversation_id == conversation_id)
            .order_by(EscalationModel.due_at.desc(), EscalationModel.breach_type)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            Escalation(
                id=str(model.id),
                conversation_id=str(model.conversation_id),
                breach_type=model.breach_type,
                due_at=model.due_at,
                reason=model.reason,
                created_at=model.created_at,
            )
            for model in result.scalars().all()
        ]


class StaticSLAPolicyProvider(ISLAPolicyProvider):
    """Fixed policy; the built-in table unless one is given."""

    def __init__(self, policy: Optional[SLAPolicy] = None):
        self._policy = policy or SLAPolicy.default()

    def get_policy(self) -> SLAPolicy:
        return self._policy
