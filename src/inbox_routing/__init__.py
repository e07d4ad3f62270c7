"""Conversation routing, supervisor takeover and SLA escalation service."""

__version__ = "1.0.0"
