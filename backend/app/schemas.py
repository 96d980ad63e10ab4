import re
import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .domain.allocation import DistributionIssue, SlotAvailability, SuggestedDistribution, VehicleSlotAssignment
from .domain.catalog import TIME_SLOTS, normalize_service_name
from .domain.repositories import AppointmentDraft, ServiceBookingDraft
from .models import AppointmentRequest, AppointmentStatus, ServiceBooking


def _check_time_label(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in TIME_SLOTS:
        raise ValueError(f"time must be one of: {', '.join(TIME_SLOTS)}")
    return value


class SlotAvailabilityRead(BaseModel):
    date: dt.date
    time: str
    available_capacity: int
    total_capacity: int

    @classmethod
    def from_domain(cls, slot: SlotAvailability) -> "SlotAvailabilityRead":
        return cls(
            date=slot.date,
            time=slot.time,
            available_capacity=slot.available_capacity,
            total_capacity=slot.total_capacity,
        )


class AvailabilityRead(BaseModel):
    service_name: str
    max_capacity: int
    slots: List[SlotAvailabilityRead]


class VehicleGroupIn(BaseModel):
    vehicle_group: int = Field(ge=0)
    vehicle_count: int = Field(ge=1)
    constraint_date: Optional[dt.date] = None
    constraint_time: Optional[str] = None

    @field_validator("constraint_time")
    @classmethod
    def _check_constraint_time(cls, value: Optional[str]) -> Optional[str]:
        return _check_time_label(value)

    def to_domain(self) -> VehicleSlotAssignment:
        return VehicleSlotAssignment(
            vehicle_group=self.vehicle_group,
            vehicle_count=self.vehicle_count,
            constraint_date=self.constraint_date,
            constraint_time=self.constraint_time,
        )


class DistributionEntry(BaseModel):
    date: dt.date
    time: str
    vehicle_count: int
    vehicle_group: Optional[int] = None

    @classmethod
    def from_domain(cls, entry: SuggestedDistribution) -> "DistributionEntry":
        return cls(
            date=entry.date,
            time=entry.time,
            vehicle_count=entry.vehicle_count,
            vehicle_group=entry.vehicle_group,
        )

    def to_domain(self) -> SuggestedDistribution:
        return SuggestedDistribution(
            date=self.date,
            time=self.time,
            vehicle_count=self.vehicle_count,
            vehicle_group=self.vehicle_group,
        )


class SuggestionRequest(BaseModel):
    service: str
    vehicle_count: int = Field(ge=1)
    start_date: dt.date
    end_date: dt.date
    groups: List[VehicleGroupIn] = Field(default_factory=list)


class SuggestionRead(BaseModel):
    service_name: str
    requested: int
    allocated: int
    complete: bool
    distribution: List[DistributionEntry]


class DistributionCheck(BaseModel):
    service: str
    vehicle_count: int = Field(ge=1)
    distribution: List[DistributionEntry]


class DistributionIssueRead(BaseModel):
    reason: str
    date: Optional[dt.date] = None
    time: Optional[str] = None
    detail: str = ""

    @classmethod
    def from_domain(cls, issue: DistributionIssue) -> "DistributionIssueRead":
        return cls(reason=issue.reason, date=issue.date, time=issue.time, detail=issue.detail)


class DistributionCheckRead(BaseModel):
    valid: bool
    issue: Optional[DistributionIssueRead] = None


class ServiceBookingIn(BaseModel):
    service_name: str
    scheduled_date: dt.date
    scheduled_time: str
    location: Optional[str] = Field(default=None, max_length=255)
    vehicle_count: int = Field(default=1, ge=1)

    @field_validator("service_name")
    @classmethod
    def _normalize_service(cls, value: str) -> str:
        return normalize_service_name(value)

    @field_validator("scheduled_time")
    @classmethod
    def _check_scheduled_time(cls, value: str) -> str:
        _check_time_label(value)
        return value


class AppointmentCreate(BaseModel):
    customer_name: str = Field(min_length=2, max_length=255)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=255)
    number_of_vehicles: int = Field(ge=1)
    id_number: Optional[str] = None
    services_requested: List[str] = Field(min_length=1)
    service_bookings: List[ServiceBookingIn] = Field(min_length=1)
    additional_notes: Optional[str] = None

    @field_validator("id_number")
    @classmethod
    def _check_id_number(cls, value: Optional[str]) -> Optional[str]:
        if value and not re.fullmatch(r"\d{10}", value):
            raise ValueError("ID number must be exactly 10 digits if provided")
        return value

    @field_validator("services_requested")
    @classmethod
    def _normalize_services(cls, value: List[str]) -> List[str]:
        return [normalize_service_name(v) for v in value]

    @model_validator(mode="after")
    def _bookings_match_services(self) -> "AppointmentCreate":
        unrequested = {b.service_name for b in self.service_bookings} - set(self.services_requested)
        if unrequested:
            raise ValueError(f"bookings for services not requested: {', '.join(sorted(unrequested))}")
        return self

    def to_draft(self) -> AppointmentDraft:
        return AppointmentDraft(
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            company_name=self.company_name,
            number_of_vehicles=self.number_of_vehicles,
            id_number=self.id_number or "",
            services_requested=list(self.services_requested),
            additional_notes=self.additional_notes,
            bookings=[
                ServiceBookingDraft(
                    service_name=b.service_name,
                    scheduled_date=b.scheduled_date,
                    scheduled_time=b.scheduled_time,
                    vehicle_count=b.vehicle_count,
                    location=b.location,
                )
                for b in self.service_bookings
            ],
        )


class ServiceBookingRead(BaseModel):
    service_name: str
    scheduled_date: dt.date
    scheduled_time: str
    location: Optional[str] = None
    vehicle_count: int

    @classmethod
    def from_db(cls, booking: ServiceBooking) -> "ServiceBookingRead":
        return cls(
            service_name=booking.service_name,
            scheduled_date=booking.scheduled_date,
            scheduled_time=booking.scheduled_time,
            location=booking.location,
            vehicle_count=booking.vehicle_count,
        )


class AppointmentRead(BaseModel):
    appointment_id: int
    reference_number: str
    status: AppointmentStatus
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    number_of_vehicles: int
    services_requested: List[str]
    service_bookings: List[ServiceBookingRead]

    @classmethod
    def from_db(cls, appointment: AppointmentRequest) -> "AppointmentRead":
        return cls(
            appointment_id=appointment.id,
            reference_number=appointment.reference_number,
            status=appointment.status,
            customer_name=appointment.customer_name,
            customer_email=appointment.customer_email,
            customer_phone=appointment.customer_phone,
            number_of_vehicles=appointment.number_of_vehicles,
            services_requested=list(appointment.services_requested),
            service_bookings=[ServiceBookingRead.from_db(b) for b in appointment.service_bookings],
        )


class AppointmentCreated(BaseModel):
    reference_number: str
    appointment: AppointmentRead
    message: str = "Appointment confirmed successfully!"


class AppointmentLookup(BaseModel):
    reference_number: str = Field(min_length=1)
    email: str = Field(min_length=1)


class AppointmentCancel(BaseModel):
    appointment_id: int = Field(ge=1)
    cancelled_via: Literal["magic_link", "lookup_page"]
    reason: Optional[str] = Field(default=None, max_length=1000)
    cancellation_token: Optional[str] = Field(default=None, min_length=16, max_length=128)
    email: Optional[str] = Field(default=None, min_length=1, max_length=255)

    @model_validator(mode="after")
    def _requires_proof(self) -> "AppointmentCancel":
        if self.cancelled_via == "magic_link" and not self.cancellation_token:
            raise ValueError("cancellation_token is required when cancelling from a link")
        if self.cancelled_via == "lookup_page" and not self.email:
            raise ValueError("email is required when cancelling from the lookup page")
        return self


class StaffCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class CancellationRead(BaseModel):
    reference_number: str
    status: AppointmentStatus
    message: str = "Appointment cancelled successfully"


class StaffServiceBookingRead(BaseModel):
    booking_id: int
    appointment_id: int
    reference_number: str
    appointment_status: AppointmentStatus
    customer_name: str
    customer_email: str
    company_name: Optional[str]
    service_name: str
    scheduled_date: dt.date
    scheduled_time: str
    vehicle_count: int

    @classmethod
    def from_db(cls, booking: ServiceBooking) -> "StaffServiceBookingRead":
        appointment = booking.appointment
        return cls(
            booking_id=booking.id,
            appointment_id=appointment.id,
            reference_number=appointment.reference_number,
            appointment_status=appointment.status,
            customer_name=appointment.customer_name,
            customer_email=appointment.customer_email,
            company_name=appointment.company_name,
            service_name=booking.service_name,
            scheduled_date=booking.scheduled_date,
            scheduled_time=booking.scheduled_time,
            vehicle_count=booking.vehicle_count,
        )
