"""
Routing Interfaces Layer
========================

FastAPI route handlers for takeover/release and category mappings.
"""

from inbox_routing.routing.interfaces.controllers import (
    mappings_router,
    router as takeover_router,
)

__all__ = ["mappings_router", "takeover_router"]
