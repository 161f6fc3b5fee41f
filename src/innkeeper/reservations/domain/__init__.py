"""
Reservation Domain Layer
========================

Domain layer for check-in monitoring.

Contains:
- Entities: Reservation, Snooze, BadGuest
- Value Objects: SLAEvaluation
- Domain Services: SLAEvaluator and the input validators

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from innkeeper.reservations.domain.entities import BadGuest, Reservation, Snooze
from innkeeper.reservations.domain.value_objects import (
    MAX_INTERVAL,
    SLAEvaluation,
    SLAEvaluator,
    validate_pair,
    validate_reservation,
    validate_snooze,
)

__all__ = [
    # Entities
    "Reservation",
    "Snooze",
    "BadGuest",
    # Value Objects & Services
    "MAX_INTERVAL",
    "SLAEvaluation",
    "SLAEvaluator",
    "validate_pair",
    "validate_reservation",
    "validate_snooze",
]
