"""
Audit Recorder
==============

Appends conversation events. Recording is best effort: a failed insert is
logged and never fails the operation being audited.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from inbox_routing.conversations.domain import ConversationEvent, IConversationEventRepository
from inbox_routing.core import RepositoryException
from inbox_routing.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def jsonable(value: Any) -> Any:
    """Make a meta value storable as JSON."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


class AuditRecorder:

    def __init__(self, event_repository: IConversationEventRepository):
        self._events = event_repository

    async def record(
        self,
        conversation_id: str,
        event_type: str,
        meta: Dict[str, Any],
        created_by: Optional[str]
    ) -> Optional[ConversationEvent]:
        event = ConversationEvent(
            conversation_id=conversation_id,
            type=event_type,
            meta=jsonable(meta),
            created_by=created_by,
        )
        try:
            return await self._events.append(event)
        except RepositoryException as e:
            logger.warning(
                "Audit event not recorded",
                extra={
                    "conversation_id": conversation_id,
                    "event_type": event_type,
                    "error": e.message,
                },
            )
            return None
