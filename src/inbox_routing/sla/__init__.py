"""
SLA Module
==========

Bounded Context for SLA clocks and escalation.

Responsibilities:
- Derive next-response and resolution due dates from priority and the last
  customer message
- Classify the response deadline as ok, due soon or breached
- Record one escalation per breached deadline
- Reload the priority → budget policy from YAML without a restart
"""
