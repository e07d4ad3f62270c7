"""
Conversations Interfaces Layer
==============================

FastAPI route handlers for thread reads and updates.
"""

from inbox_routing.conversations.interfaces.controllers import router as threads_router

__all__ = ["threads_router"]
