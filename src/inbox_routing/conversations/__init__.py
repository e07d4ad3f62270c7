"""
Conversations Module
====================

Bounded Context for the conversation (ticket) record itself.

Responsibilities:
- Read conversations as the thread DTO used by every inbox endpoint
- Validate and apply supervisor/admin patches to a conversation
- Append the immutable audit trail of state transitions
"""
