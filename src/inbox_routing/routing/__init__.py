"""
Routing Module
==============

Bounded Context for conversation ownership.

Responsibilities:
- Round-robin assignment within a team (through the IAssignmentResolver port)
- Supervisor takeover and release with restoration of the prior owner
- Team ↔ routing-category mappings that decide which team pool a new
  conversation enters
"""
