"""
SLA Domain Layer
================

Contains:
- Entities: Escalation
- Value Objects: SLAPolicy, SLATarget, SLAComputation
- Domain Services: SLACalculator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from inbox_routing.sla.domain.entities import Escalation, BREACH_REASONS
from inbox_routing.sla.domain.value_objects import (
    SLA_DUE_SOON_MINUTES,
    DEFAULT_SLA_TARGETS,
    SLACalculator,
    SLAComputation,
    SLAPolicy,
    SLATarget,
)

__all__ = [
    "Escalation",
    "BREACH_REASONS",
    "SLA_DUE_SOON_MINUTES",
    "DEFAULT_SLA_TARGETS",
    "SLACalculator",
    "SLAComputation",
    "SLAPolicy",
    "SLATarget",
]
