from datetime import date
from typing import List, Optional

from ..domain.repositories import ServiceBookingRepository
from ..models import ServiceBooking


def _matches(booking: ServiceBooking, needle: str) -> bool:
    appointment = booking.appointment
    haystack = (
        appointment.customer_name,
        appointment.reference_number,
        appointment.customer_email or "",
        appointment.company_name or "",
    )
    return any(needle in value.lower() for value in haystack)


async def list_service_bookings(
    booking_repo: ServiceBookingRepository,
    *,
    service_name: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    search: Optional[str] = None,
) -> List[ServiceBooking]:
    if start is not None and end is not None and start > end:
        raise ValueError("start_date must not be after end_date")
    bookings = await booking_repo.list_for_staff(service_name=service_name, start=start, end=end)
    if search:
        needle = search.strip().lower()
        bookings = [booking for booking in bookings if _matches(booking, needle)]
    return bookings
