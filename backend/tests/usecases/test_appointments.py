from datetime import date, datetime
from typing import Optional

import pytest
from app.domain.catalog import INSPECTION, REGISTRATION, WEIGHING
from app.domain.errors import AlreadyCancelledError, AppointmentNotFoundError, CapacityError, OrderingError
from app.domain.repositories import AppointmentDraft, ServiceBookingDraft
from app.models import AppointmentRequest, AppointmentStatus, CancellationLog, CancelledVia, ServiceBooking
from app.usecases import appointments as uc

DAY = date(2026, 1, 10)


def _draft(*bookings: ServiceBookingDraft, vehicles: int = 1) -> AppointmentDraft:
    return AppointmentDraft(
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        number_of_vehicles=vehicles,
        services_requested=sorted({b.service_name for b in bookings}),
        bookings=list(bookings),
    )


def _appointment(status: AppointmentStatus = AppointmentStatus.CONFIRMED) -> AppointmentRequest:
    now = datetime(2026, 1, 1, 12, 0)
    appointment = AppointmentRequest(
        id=42,
        reference_number="REQ-20260101-007",
        cancellation_token="a" * 64,
        status=status,
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        number_of_vehicles=1,
        id_number="",
        services_requested=[WEIGHING],
        created_at=now,
        updated_at=now,
    )
    appointment.service_bookings = [
        ServiceBooking(
            id=1,
            service_name=WEIGHING,
            scheduled_date=DAY,
            scheduled_time="08:30 AM",
            vehicle_count=1,
            created_at=now,
            updated_at=now,
        )
    ]
    return appointment


class FakeBookingRepo:
    def __init__(self, booked: Optional[dict[tuple[str, date, str], int]] = None) -> None:
        self.booked = booked or {}
        self.locked: list[tuple[str, date, str]] = []

    async def booked_count_for_update(self, service_name: str, scheduled_date: date, scheduled_time: str) -> int:
        key = (service_name, scheduled_date, scheduled_time)
        self.locked.append(key)
        return self.booked.get(key, 0)


class FakeAppointmentRepo:
    def __init__(self, appointment: Optional[AppointmentRequest] = None) -> None:
        self.appointment = appointment
        self.created: Optional[AppointmentDraft] = None
        self.cancel_log: Optional[CancellationLog] = None
        self.lookups: list[tuple[str, str]] = []

    async def create(self, draft: AppointmentDraft, *, reference_number: str, cancellation_token: str) -> AppointmentRequest:
        self.created = draft
        appointment = _appointment()
        appointment.reference_number = reference_number
        appointment.cancellation_token = cancellation_token
        return appointment

    async def get_by_token(self, token: str) -> Optional[AppointmentRequest]:
        return self.appointment

    async def find_by_reference_and_email(self, reference_number: str, email: str) -> Optional[AppointmentRequest]:
        self.lookups.append((reference_number, email))
        return self.appointment

    async def get_for_update(self, appointment_id: int) -> Optional[AppointmentRequest]:
        return self.appointment

    async def cancel(self, appointment: AppointmentRequest, log: CancellationLog) -> AppointmentRequest:
        self.cancel_log = log
        return appointment


@pytest.mark.asyncio
async def test_submit_persists_with_generated_references() -> None:
    booking_repo = FakeBookingRepo()
    appt_repo = FakeAppointmentRepo()
    draft = _draft(
        ServiceBookingDraft(WEIGHING, DAY, "08:30 AM"),
        ServiceBookingDraft(INSPECTION, DAY, "09:30 AM"),
    )
    appointment = await uc.submit_appointment(booking_repo, appt_repo, draft)
    assert appt_repo.created is draft
    assert appointment.reference_number.startswith("REQ-")
    assert len(appointment.cancellation_token or "") == 64
    assert booking_repo.locked == [(WEIGHING, DAY, "08:30 AM"), (INSPECTION, DAY, "09:30 AM")]


@pytest.mark.asyncio
async def test_submit_rejects_out_of_order_services_before_touching_storage() -> None:
    booking_repo = FakeBookingRepo()
    appt_repo = FakeAppointmentRepo()
    draft = _draft(
        ServiceBookingDraft(WEIGHING, DAY, "10:30 AM"),
        ServiceBookingDraft(INSPECTION, DAY, "10:30 AM"),
    )
    with pytest.raises(OrderingError) as excinfo:
        await uc.submit_appointment(booking_repo, appt_repo, draft)
    assert excinfo.value.violation.service == INSPECTION
    assert booking_repo.locked == []
    assert appt_repo.created is None


@pytest.mark.asyncio
async def test_submit_rejects_when_slot_full() -> None:
    booking_repo = FakeBookingRepo({(REGISTRATION, DAY, "08:30 AM"): 4})
    appt_repo = FakeAppointmentRepo()
    draft = _draft(ServiceBookingDraft(REGISTRATION, DAY, "08:30 AM", vehicle_count=2), vehicles=2)
    with pytest.raises(CapacityError):
        await uc.submit_appointment(booking_repo, appt_repo, draft)
    assert appt_repo.created is None


@pytest.mark.asyncio
async def test_submit_counts_repeated_slots_within_one_submission() -> None:
    booking_repo = FakeBookingRepo({(REGISTRATION, DAY, "08:30 AM"): 2})
    appt_repo = FakeAppointmentRepo()
    draft = _draft(
        ServiceBookingDraft(REGISTRATION, DAY, "08:30 AM", vehicle_count=2),
        ServiceBookingDraft(REGISTRATION, DAY, "08:30 AM", vehicle_count=2),
        vehicles=4,
    )
    with pytest.raises(CapacityError):
        await uc.submit_appointment(booking_repo, appt_repo, draft)
    assert booking_repo.locked == [(REGISTRATION, DAY, "08:30 AM")]


@pytest.mark.asyncio
async def test_lookup_trims_inputs_and_returns_active_appointment() -> None:
    repo = FakeAppointmentRepo(_appointment())
    appointment = await uc.lookup_appointment(repo, reference_number=" REQ-20260101-007 ", email=" Jane@Example.com ")
    assert appointment.id == 42
    assert repo.lookups == [("REQ-20260101-007", "Jane@Example.com")]


@pytest.mark.asyncio
async def test_lookup_missing_and_cancelled() -> None:
    with pytest.raises(AppointmentNotFoundError):
        await uc.lookup_appointment(FakeAppointmentRepo(None), reference_number="x", email="y@z.com")
    with pytest.raises(AlreadyCancelledError):
        await uc.get_by_cancellation_token(
            FakeAppointmentRepo(_appointment(AppointmentStatus.CANCELLED)),
            token="a" * 64,
        )


@pytest.mark.asyncio
async def test_cancel_writes_log_and_returns_previous_status() -> None:
    repo = FakeAppointmentRepo(_appointment())
    updated, previous = await uc.cancel_appointment(
        repo,
        appointment_id=42,
        cancelled_via=CancelledVia.MAGIC_LINK,
        reason="plans changed",
        ip_address="10.0.0.1",
    )
    assert previous == AppointmentStatus.CONFIRMED
    assert updated.status == AppointmentStatus.CANCELLED
    assert repo.cancel_log is not None
    assert repo.cancel_log.scheduled_dates == ["Vehicle Weighing: 1/10/2026 at 08:30 AM"]
    assert repo.cancel_log.cancelled_via == CancelledVia.MAGIC_LINK
    assert repo.cancel_log.ip_address == "10.0.0.1"


@pytest.mark.asyncio
async def test_cancel_twice_is_rejected() -> None:
    repo = FakeAppointmentRepo(_appointment(AppointmentStatus.CANCELLED))
    with pytest.raises(AlreadyCancelledError):
        await uc.cancel_appointment(repo, appointment_id=42, cancelled_via=CancelledVia.LOOKUP_PAGE)
    assert repo.cancel_log is None


@pytest.mark.asyncio
async def test_cancel_unknown_appointment() -> None:
    with pytest.raises(AppointmentNotFoundError):
        await uc.cancel_appointment(FakeAppointmentRepo(None), appointment_id=1, cancelled_via=CancelledVia.STAFF)


@pytest.mark.asyncio
async def test_cancel_with_wrong_token_is_reported_as_not_found() -> None:
    repo = FakeAppointmentRepo(_appointment())
    with pytest.raises(AppointmentNotFoundError):
        await uc.cancel_appointment(
            repo,
            appointment_id=42,
            cancelled_via=CancelledVia.MAGIC_LINK,
            cancellation_token="b" * 64,
        )
    assert repo.cancel_log is None


@pytest.mark.asyncio
async def test_cancel_with_other_customers_email_is_reported_as_not_found() -> None:
    repo = FakeAppointmentRepo(_appointment(AppointmentStatus.CANCELLED))
    with pytest.raises(AppointmentNotFoundError):
        await uc.cancel_appointment(
            repo,
            appointment_id=42,
            cancelled_via=CancelledVia.LOOKUP_PAGE,
            customer_email="someone@example.com",
        )


@pytest.mark.asyncio
async def test_cancel_accepts_matching_token_and_email_case_insensitively() -> None:
    repo = FakeAppointmentRepo(_appointment())
    updated, _ = await uc.cancel_appointment(
        repo,
        appointment_id=42,
        cancelled_via=CancelledVia.LOOKUP_PAGE,
        cancellation_token="a" * 64,
        customer_email=" Jane@Example.com ",
    )
    assert updated.status == AppointmentStatus.CANCELLED
