"""
SLA Application Layer
======================

Contains:
- Services: EscalationRecorder, SLARecomputationService
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from inbox_routing.sla.application.dto import (
    EscalationListResponse,
    EscalationResponse,
    SLAResponse,
    SweepResponse,
)
from inbox_routing.sla.application.services import (
    UNSET,
    EscalationRecorder,
    IEscalationRepository,
    ISLAPolicyProvider,
    SLAOverrides,
    SLARecomputationService,
    SweepResult,
)

__all__ = [
    # DTOs
    "EscalationListResponse",
    "EscalationResponse",
    "SLAResponse",
    "SweepResponse",
    # Services
    "UNSET",
    "EscalationRecorder",
    "SLAOverrides",
    "SLARecomputationService",
    "SweepResult",
    # Repository Interfaces
    "IEscalationRepository",
    "ISLAPolicyProvider",
]
