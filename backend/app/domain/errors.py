from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ordering import OrderingViolation


class DomainError(Exception):
    """Base class for booking domain errors."""


class CapacityError(DomainError):
    pass


class OrderingError(DomainError):
    def __init__(self, violation: "OrderingViolation") -> None:
        super().__init__(violation.message())
        self.violation = violation


class AppointmentNotFoundError(DomainError):
    pass


class AlreadyCancelledError(DomainError):
    pass
