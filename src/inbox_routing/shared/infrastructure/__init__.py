"""
Shared Infrastructure
=====================

Technical helpers used by every bounded context:
- Structured logging
- UTC clock
"""
