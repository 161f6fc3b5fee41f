"""
Reservations Module
===================

Bounded Context for check-in monitoring (the hotel metaphor: applications
reserve, check in, snooze and check out).

Responsibilities:
- Accept reservations, check-ins, snoozes and checkouts
- Evaluate every reservation against its allowed check-in gap
- Record failure alerts and notify via Slack (coordinator node only)
- Report the pairs that fail most often ("bad guests")
"""
