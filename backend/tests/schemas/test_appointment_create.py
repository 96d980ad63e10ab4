from datetime import date
from typing import Any

import pytest
from app.domain.catalog import INSPECTION, WEIGHING
from app.schemas import AppointmentCancel, AppointmentCreate
from pydantic import ValidationError

DAY = date(2026, 1, 10)


def _fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "number_of_vehicles": 1,
        "services_requested": ["weighing", "inspection"],
        "service_bookings": [
            {"service_name": "weighing", "scheduled_date": DAY, "scheduled_time": "08:30 AM"},
            {"service_name": "inspection", "scheduled_date": DAY, "scheduled_time": "09:30 AM"},
        ],
    }
    fields.update(overrides)
    return fields


def test_accepts_valid_payload_and_normalizes_services() -> None:
    payload = AppointmentCreate(**_fields())
    assert payload.services_requested == [WEIGHING, INSPECTION]
    draft = payload.to_draft()
    assert draft.customer_email == "jane@example.com"
    assert draft.id_number == ""


@pytest.mark.parametrize("email", ["jane@example..com", "jane@.example.com", "jane.example.com", "jane@"])
def test_rejects_malformed_email(email: str) -> None:
    with pytest.raises(ValidationError):
        AppointmentCreate(**_fields(customer_email=email))


def test_rejects_id_number_that_is_not_ten_digits() -> None:
    with pytest.raises(ValidationError):
        AppointmentCreate(**_fields(id_number="12345"))


def test_rejects_booking_for_service_not_requested() -> None:
    with pytest.raises(ValidationError):
        AppointmentCreate(**_fields(services_requested=["weighing"]))


def test_rejects_unknown_time_label() -> None:
    bookings = [{"service_name": "weighing", "scheduled_date": DAY, "scheduled_time": "07:00 AM"}]
    with pytest.raises(ValidationError):
        AppointmentCreate(**_fields(services_requested=["weighing"], service_bookings=bookings))


def test_cancel_requires_token_for_link_and_email_for_lookup() -> None:
    with pytest.raises(ValidationError):
        AppointmentCancel(appointment_id=1, cancelled_via="magic_link")
    with pytest.raises(ValidationError):
        AppointmentCancel(appointment_id=1, cancelled_via="lookup_page", cancellation_token="a" * 64)

    payload = AppointmentCancel(appointment_id=1, cancelled_via="lookup_page", email="jane@example.com")
    assert payload.cancellation_token is None
