"""
Conversation Repository Interfaces
==================================

Ports the application layer depends on. Concrete SQLAlchemy
implementations live in the infrastructure layer; tests use in-memory
fakes.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from inbox_routing.conversations.domain.entities import Conversation, ConversationEvent


class IConversationRepository(ABC):
    """Interface for conversation data access. Every call is workspace scoped."""

    @abstractmethod
    async def get(self, workspace_id: str, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation, or None if it does not exist in the workspace."""

    @abstractmethod
    async def update_fields(
        self,
        workspace_id: str,
        conversation_id: str,
        fields: Dict[str, Any]
    ) -> bool:
        """Apply a column patch in a single write. Returns False if no row matched."""

    @abstractmethod
    async def list(
        self,
        workspace_id: str,
        filters: Dict[str, Any],
        limit: int = 100,
        offset: int = 0
    ) -> List[Conversation]:
        """List conversations, pinned first then most recent message first."""

    @abstractmethod
    async def list_ids_by_status(
        self,
        workspace_id: str,
        statuses: Sequence[str]
    ) -> List[str]:
        """Ids of conversations whose ticket status is in ``statuses``."""

    @asynccontextmanager
    async def isolated(self) -> AsyncIterator[None]:
        """
        Scope whose writes are undone on failure without affecting work
        done outside it.
        """
        yield


class IConversationEventRepository(ABC):
    """Interface for the append-only audit log."""

    @abstractmethod
    async def append(self, event: ConversationEvent) -> ConversationEvent:
        """Insert an event. Never updates or deletes."""

    @abstractmethod
    async def list_for_conversation(self, conversation_id: str) -> List[ConversationEvent]:
        """Events for a conversation, oldest first."""
