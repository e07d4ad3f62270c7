"""
Conversations Infrastructure Layer
===================================

- Models: SQLAlchemy ORM models
- Repositories: conversation and audit event data access
"""

from inbox_routing.conversations.infrastructure.models import (
    ConversationEventModel,
    ConversationModel,
)
from inbox_routing.conversations.infrastructure.repositories import (
    SQLAlchemyConversationEventRepository,
    SQLAlchemyConversationRepository,
)

__all__ = [
    "ConversationEventModel",
    "ConversationModel",
    "SQLAlchemyConversationEventRepository",
    "SQLAlchemyConversationRepository",
]
