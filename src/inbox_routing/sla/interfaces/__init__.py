"""
SLA Interfaces Layer
====================

FastAPI route handlers for SLA recomputation and escalations.
"""

from inbox_routing.sla.interfaces.controllers import router as sla_router

__all__ = ["sla_router"]
