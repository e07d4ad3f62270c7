"""
SLA Infrastructure Layer
=========================

- Models: SQLAlchemy ORM models
- Repositories: escalation data access, static policy provider
- External: YAML policy file with watchdog hot reload
"""

from inbox_routing.sla.infrastructure.external import ConfigFileHandler, SLAPolicyManager
from inbox_routing.sla.infrastructure.models import EscalationModel
from inbox_routing.sla.infrastructure.repositories import (
    SQLAlchemyEscalationRepository,
    StaticSLAPolicyProvider,
)

__all__ = [
    "ConfigFileHandler",
    "EscalationModel",
    "SLAPolicyManager",
    "SQLAlchemyEscalationRepository",
    "StaticSLAPolicyProvider",
]
