"""
Conversation Domain Layer
=========================

Contains:
- Entities: Conversation, ConversationEvent
- Repository interfaces: IConversationRepository, IConversationEventRepository
"""

from inbox_routing.conversations.domain.entities import Conversation, ConversationEvent
from inbox_routing.conversations.domain.repositories import (
    IConversationRepository,
    IConversationEventRepository,
)

__all__ = [
    "Conversation",
    "ConversationEvent",
    "IConversationRepository",
    "IConversationEventRepository",
]
