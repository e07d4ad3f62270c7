"""
Routing Application Layer
==========================

Contains:
- Services: TakeoverCoordinator, RoutingCategoryMapper, ConversationRouter
- DTOs: mapping request and response models
"""

from inbox_routing.routing.application.dto import (
    MappingItem,
    MappingsRequest,
    MappingsResponse,
    MappingView,
)
from inbox_routing.routing.application.services import (
    TAKEOVER_FEATURE,
    ConversationRouter,
    MappingDetails,
    RoutingCategoryMapper,
    RoutingResult,
    TakeoverCoordinator,
)

__all__ = [
    # DTOs
    "MappingItem",
    "MappingsRequest",
    "MappingsResponse",
    "MappingView",
    # Services
    "TAKEOVER_FEATURE",
    "ConversationRouter",
    "MappingDetails",
    "RoutingCategoryMapper",
    "RoutingResult",
    "TakeoverCoordinator",
]
