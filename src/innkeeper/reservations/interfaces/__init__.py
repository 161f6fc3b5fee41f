"""
Reservation Interfaces Layer
============================

Interface adapters (controllers) for the reservations module.

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from innkeeper.reservations.interfaces.controllers import router as reservations_router

__all__ = ["reservations_router"]
