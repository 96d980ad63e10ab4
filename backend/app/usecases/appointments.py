import logging
import secrets
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from ..domain.catalog import max_capacity
from ..domain.errors import AlreadyCancelledError, AppointmentNotFoundError, OrderingError
from ..domain.ordering import BookedSlot, validate_ordering
from ..domain.repositories import AppointmentDraft, AppointmentRepository, ServiceBookingRepository
from ..domain.services import SlotSnapshot, validate_capacity
from ..models import AppointmentRequest, AppointmentStatus, CancellationLog, CancelledVia, ServiceBooking
from ..utils.references import generate_cancellation_token, generate_reference_number
from ..utils.time import utc_now_naive

logger = logging.getLogger(__name__)


def check_ordering(draft: AppointmentDraft, *, require_matching_groups: bool = False) -> None:
    """Raise OrderingError when a vehicle group would reach a service before finishing the previous one."""
    by_service: Dict[str, List[BookedSlot]] = defaultdict(list)
    for booking in draft.bookings:
        by_service[booking.service_name].append(
            BookedSlot(date=booking.scheduled_date, time=booking.scheduled_time, vehicle_count=booking.vehicle_count)
        )
    violation = validate_ordering(by_service, require_matching_groups=require_matching_groups)
    if violation is not None:
        raise OrderingError(violation)


async def submit_appointment(
    booking_repo: ServiceBookingRepository,
    appointment_repo: AppointmentRepository,
    draft: AppointmentDraft,
    *,
    require_matching_groups: bool = False,
) -> AppointmentRequest:
    """
    Validate ordering, re-check capacity under row locks, then persist a confirmed appointment.
    Must run inside a transaction so the capacity check and the insert commit together.
    """
    check_ordering(draft, require_matching_groups=require_matching_groups)

    committed: Dict[Tuple[str, date, str], int] = {}
    pending: Dict[Tuple[str, date, str], int] = defaultdict(int)
    for booking in draft.bookings:
        key = (booking.service_name, booking.scheduled_date, booking.scheduled_time)
        if key not in committed:
            committed[key] = await booking_repo.booked_count_for_update(*key)
        snapshot = SlotSnapshot(
            service_name=booking.service_name,
            date=booking.scheduled_date,
            time=booking.scheduled_time,
            capacity=max_capacity(booking.service_name),
            booked=committed[key] + pending[key],
        )
        validate_capacity(snapshot, vehicle_count=booking.vehicle_count)
        pending[key] += booking.vehicle_count

    appointment = await appointment_repo.create(
        draft,
        reference_number=generate_reference_number(),
        cancellation_token=generate_cancellation_token(),
    )
    logger.info(
        "appointment confirmed reference=%s bookings=%d vehicles=%d",
        appointment.reference_number,
        len(draft.bookings),
        draft.number_of_vehicles,
    )
    return appointment


def _ensure_active(appointment: Optional[AppointmentRequest], *, not_found: str) -> AppointmentRequest:
    if appointment is None:
        raise AppointmentNotFoundError(not_found)
    if appointment.status == AppointmentStatus.CANCELLED:
        raise AlreadyCancelledError("This appointment has already been cancelled")
    return appointment


async def get_by_cancellation_token(appointment_repo: AppointmentRepository, *, token: str) -> AppointmentRequest:
    appointment = await appointment_repo.get_by_token(token)
    return _ensure_active(appointment, not_found="Invalid or expired cancellation link")


async def lookup_appointment(
    appointment_repo: AppointmentRepository,
    *,
    reference_number: str,
    email: str,
) -> AppointmentRequest:
    appointment = await appointment_repo.find_by_reference_and_email(reference_number.strip(), email.strip())
    return _ensure_active(appointment, not_found="No appointment found with that reference number and email")


def _describe_bookings(bookings: List[ServiceBooking]) -> List[str]:
    return [
        f"{b.service_name}: {b.scheduled_date.month}/{b.scheduled_date.day}/{b.scheduled_date.year} at {b.scheduled_time}"
        for b in bookings
    ]


def _owns(appointment: AppointmentRequest, token: Optional[str], email: Optional[str]) -> bool:
    if token is not None and not secrets.compare_digest((appointment.cancellation_token or "").encode(), token.encode()):
        return False
    if email is not None and appointment.customer_email.lower() != email.strip().lower():
        return False
    return True


async def cancel_appointment(
    appointment_repo: AppointmentRepository,
    *,
    appointment_id: int,
    cancelled_via: CancelledVia,
    reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    staff_id: Optional[int] = None,
    cancellation_token: Optional[str] = None,
    customer_email: Optional[str] = None,
) -> tuple[AppointmentRequest, AppointmentStatus]:
    """
    Cancel and write the cancellation log. Returns the appointment and its previous status.

    When a cancellation token or customer email is given it must belong to the appointment;
    a mismatch is reported as not found so ids cannot be probed.
    """
    appointment = await appointment_repo.get_for_update(appointment_id)
    if appointment is None or not _owns(appointment, cancellation_token, customer_email):
        raise AppointmentNotFoundError("Appointment not found")
    if appointment.status == AppointmentStatus.CANCELLED or appointment.cancellation is not None:
        raise AlreadyCancelledError("This appointment has already been cancelled")

    previous = appointment.status
    now = utc_now_naive()
    log = CancellationLog(
        appointment_request_id=appointment.id,
        reference_number=appointment.reference_number,
        customer_name=appointment.customer_name,
        customer_email=appointment.customer_email,
        services_requested=list(appointment.services_requested),
        scheduled_dates=_describe_bookings(list(appointment.service_bookings)),
        reason=reason or None,
        cancelled_via=cancelled_via,
        ip_address=ip_address,
        cancelled_by_staff=staff_id,
        cancelled_at=now,
    )
    appointment.status = AppointmentStatus.CANCELLED
    appointment.updated_at = now
    updated = await appointment_repo.cancel(appointment, log)
    logger.info("appointment cancelled reference=%s via=%s", updated.reference_number, cancelled_via.value)
    return updated, previous
