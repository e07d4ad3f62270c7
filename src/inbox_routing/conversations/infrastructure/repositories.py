"""
Conversation Infrastructure Repositories
=========================================

SQLAlchemy implementations of the conversation ports.

Every statement carries the workspace predicate; a conversation id from
another workspace behaves exactly like an unknown id.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.conversations.domain import (
    Conversation,
    ConversationEvent,
    IConversationEventRepository,
    IConversationRepository,
)
from inbox_routing.conversations.infrastructure.models import (
    ConversationEventModel,
    ConversationModel,
)
from inbox_routing.infrastructure.database import is_uuid, store_error
from inbox_routing.shared.infrastructure.clock import utc_now

# Columns a patch may touch
_UPDATABLE_COLUMNS = frozenset({
    "team_id",
    "category_id",
    "assigned_member_id",
    "assigned_to",
    "takeover_by_member_id",
    "takeover_prev_assigned_member_id",
    "takeover_at",
    "ticket_status",
    "priority",
    "last_customer_message_at",
    "next_response_due_at",
    "resolution_due_at",
    "sla_status",
    "unread_count",
    "is_archived",
    "pinned",
    "snoozed_until",
    "last_read_at",
})


def _to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=str(model.id),
        workspace_id=str(model.workspace_id),
        contact_id=model.contact_id,
        team_id=model.team_id,
        category_id=model.category_id,
        assigned_member_id=model.assigned_member_id,
        assigned_to=model.assigned_to,
        takeover_by_member_id=model.takeover_by_member_id,
        takeover_prev_assigned_member_id=model.takeover_prev_assigned_member_id,
        takeover_at=model.takeover_at,
        ticket_status=model.ticket_status,
        priority=model.priority,
        last_customer_message_at=model.last_customer_message_at,
        next_response_due_at=model.next_response_due_at,
        resolution_due_at=model.resolution_due_at,
        sla_status=model.sla_status,
        unread_count=model.unread_count,
        is_archived=model.is_archived,
        pinned=model.pinned,
        snoozed_until=model.snoozed_until,
        last_read_at=model.last_read_at,
        last_message_at=model.last_message_at,
    )


class SQLAlchemyConversationRepository(IConversationRepository):
    """SQLAlchemy implementation of the conversation repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @asynccontextmanager
    async def isolated(self) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield

    async def get(self, workspace_id: str, conversation_id: str) -> Optional[Conversation]:
        if not (is_uuid(workspace_id) and is_uuid(conversation_id)):
            return None

        stmt = (
            select(ConversationModel)
            .where(
                ConversationModel.workspace_id == workspace_id,
                ConversationModel.id == conversation_id,
            )
            .execution_options(populate_existing=True)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        model = result.scalar_one_or_none()
        return _to_entity(model) if model else None

    async def update_fields(
        self,
        workspace_id: str,
        conversation_id: str,
        fields: Dict[str, Any]
    ) -> bool:
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")
        if not (is_uuid(workspace_id) and is_uuid(conversation_id)):
            return False

        stmt = (
            update(ConversationModel)
            .where(
                ConversationModel.workspace_id == workspace_id,
                ConversationModel.id == conversation_id,
            )
            .values(**fields, updated_at=utc_now())
            .returning(ConversationModel.id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._session.execute(stmt)
            row = result.first()
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return row is not None

    async def list(
        self,
        workspace_id: str,
        filters: Dict[str, Any],
        limit: int = 100,
        offset: int = 0
    ) -> List[Conversation]:
        if not is_uuid(workspace_id):
            return []

        conditions = [ConversationModel.workspace_id == workspace_id]

        if filters.get("status"):
            conditions.append(ConversationModel.ticket_status == filters["status"])

        if filters.get("priority"):
            conditions.append(ConversationModel.priority == filters["priority"])

        agent = filters.get("agent")
        if agent == "unassigned":
            conditions.append(ConversationModel.assigned_member_id.is_(None))
        elif agent and agent != "all":
            if not is_uuid(agent):
                return []
            conditions.append(ConversationModel.assigned_member_id == agent)

        if filters.get("archived") is not None:
            conditions.append(ConversationModel.is_archived == filters["archived"])

        if filters.get("pinned") is not None:
            conditions.append(ConversationModel.pinned == filters["pinned"])

        stmt = (
            select(ConversationModel)
            .where(*conditions)
            .order_by(
                ConversationModel.pinned.desc(),
                ConversationModel.last_message_at.desc().nulls_last(),
                ConversationModel.id,
            )
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [_to_entity(model) for model in result.scalars().all()]

    async def list_ids_by_status(
        self,
        workspace_id: str,
        statuses: Sequence[str]
    ) -> List[str]:
        if not is_uuid(workspace_id):
            return []

        stmt = (
            select(ConversationModel.id)
            .where(
                ConversationModel.workspace_id == workspace_id,
                ConversationModel.ticket_status.in_(list(statuses)),
            )
            .order_by(ConversationModel.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [str(conversation_id) for conversation_id in result.scalars().all()]


class SQLAlchemyConversationEventRepository(IConversationEventRepository):
    """
    Append-only event store.

    Each insert runs in a SAVEPOINT so a failed audit write leaves the
    surrounding request transaction usable.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, event: ConversationEvent) -> ConversationEvent:
        model = ConversationEventModel(
            conversation_id=event.conversation_id,
            type=event.type,
            meta=dict(event.meta),
            created_by=event.created_by if is_uuid(event.created_by) else None,
            created_at=utc_now(),
        )
        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except SQLAlchemyError as e:
            raise store_error(e) from e

        event.id = str(model.id)
        event.created_at = model.created_at
        return event

    async def list_for_conversation(self, conversation_id: str) -> List[ConversationEvent]:
        if not is_uuid(conversation_id):
            return []

        stmt = (
            select(ConversationEventModel)
            .where(ConversationEventModel.conversation_id == conversation_id)
            .order_by(ConversationEventModel.created_at, ConversationEventModel.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            ConversationEvent(
                id=str(model.id),
                conversation_id=str(model.conversation_id),
                type=model.type,
                meta=model.meta or {},
                created_by=model.created_by,
                created_at=model.created_at,
            )
            for model in result.scalars().all()
        ]
