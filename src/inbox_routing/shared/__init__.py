"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (SLA, conversations,
routing).

Architecture Pattern: Modular Monolith
- Each module (sla, conversations, routing) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add SLA or routing business logic to the shared kernel.
"""
