from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from ..models import AppointmentRequest, CancellationLog, ServiceBooking


@dataclass(frozen=True)
class ServiceBookingDraft:
    service_name: str
    scheduled_date: date
    scheduled_time: str
    vehicle_count: int = 1
    location: Optional[str] = None


@dataclass(frozen=True)
class AppointmentDraft:
    customer_name: str
    customer_email: str
    number_of_vehicles: int
    services_requested: list[str]
    bookings: list[ServiceBookingDraft]
    customer_phone: Optional[str] = None
    company_name: Optional[str] = None
    id_number: str = ""
    additional_notes: Optional[str] = None


class ServiceBookingRepository(Protocol):
    async def booked_counts(self, service_name: str, start: date, end: date) -> dict[tuple[date, str], int]: ...

    async def booked_count_for_update(self, service_name: str, scheduled_date: date, scheduled_time: str) -> int: ...

    async def list_for_staff(
        self,
        *,
        service_name: str | None,
        start: date | None,
        end: date | None,
    ) -> list[ServiceBooking]: ...


class AppointmentRepository(Protocol):
    async def create(
        self,
        draft: AppointmentDraft,
        *,
        reference_number: str,
        cancellation_token: str,
    ) -> AppointmentRequest: ...

    async def get_by_token(self, token: str) -> AppointmentRequest | None: ...

    async def find_by_reference_and_email(self, reference_number: str, email: str) -> AppointmentRequest | None: ...

    async def get_for_update(self, appointment_id: int) -> AppointmentRequest | None: ...

    async def cancel(self, appointment: AppointmentRequest, log: CancellationLog) -> AppointmentRequest: ...
