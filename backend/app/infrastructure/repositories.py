from __future__ import annotations

from datetime import date
from typing import Any, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..domain.repositories import AppointmentDraft, AppointmentRepository, ServiceBookingRepository
from ..models import AppointmentRequest, AppointmentStatus, CancellationLog, ServiceBooking
from ..utils.time import utc_now_naive


class SqlAlchemyServiceBookingRepository(ServiceBookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def booked_counts(self, service_name: str, start: date, end: date) -> dict[tuple[date, str], int]:
        stmt: Select[Tuple[date, str, Any]] = (
            select(
                ServiceBooking.scheduled_date,
                ServiceBooking.scheduled_time,
                func.coalesce(func.sum(ServiceBooking.vehicle_count), 0).label("booked"),
            )
            .join(AppointmentRequest, ServiceBooking.appointment_request_id == AppointmentRequest.id)
            .where(
                ServiceBooking.service_name == service_name,
                ServiceBooking.scheduled_date >= start,
                ServiceBooking.scheduled_date <= end,
                AppointmentRequest.status == AppointmentStatus.CONFIRMED,
            )
            .group_by(ServiceBooking.scheduled_date, ServiceBooking.scheduled_time)
        )
        rows = await self.session.execute(stmt)
        return {(scheduled_date, scheduled_time): int(booked) for scheduled_date, scheduled_time, booked in rows.all()}

    async def booked_count_for_update(self, service_name: str, scheduled_date: date, scheduled_time: str) -> int:
        stmt = (
            select(ServiceBooking.vehicle_count)
            .join(AppointmentRequest, ServiceBooking.appointment_request_id == AppointmentRequest.id)
            .where(
                ServiceBooking.service_name == service_name,
                ServiceBooking.scheduled_date == scheduled_date,
                ServiceBooking.scheduled_time == scheduled_time,
                AppointmentRequest.status == AppointmentStatus.CONFIRMED,
            )
            .with_for_update()
        )
        counts = await self.session.scalars(stmt)
        return sum(int(count or 1) for count in counts.all())

    async def list_for_staff(
        self,
        *,
        service_name: str | None,
        start: date | None,
        end: date | None,
    ) -> list[ServiceBooking]:
        stmt = (
            select(ServiceBooking)
            .options(selectinload(ServiceBooking.appointment))
            .order_by(ServiceBooking.scheduled_date, ServiceBooking.id)
        )
        if service_name is not None:
            stmt = stmt.where(ServiceBooking.service_name == service_name)
        if start is not None:
            stmt = stmt.where(ServiceBooking.scheduled_date >= start)
        if end is not None:
            stmt = stmt.where(ServiceBooking.scheduled_date <= end)
        rows = await self.session.scalars(stmt)
        return list(rows.all())


class SqlAlchemyAppointmentRepository(AppointmentRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        draft: AppointmentDraft,
        *,
        reference_number: str,
        cancellation_token: str,
    ) -> AppointmentRequest:
        now = utc_now_naive()
        appointment = AppointmentRequest(
            reference_number=reference_number,
            cancellation_token=cancellation_token,
            status=AppointmentStatus.CONFIRMED,
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            company_name=draft.company_name,
            number_of_vehicles=draft.number_of_vehicles,
            id_number=draft.id_number,
            services_requested=list(draft.services_requested),
            additional_notes=draft.additional_notes,
            created_at=now,
            updated_at=now,
        )
        appointment.service_bookings = [
            ServiceBooking(
                service_name=booking.service_name,
                scheduled_date=booking.scheduled_date,
                scheduled_time=booking.scheduled_time,
                location=booking.location,
                vehicle_count=booking.vehicle_count,
                created_at=now,
                updated_at=now,
            )
            for booking in draft.bookings
        ]
        self.session.add(appointment)
        await self.session.flush()
        return appointment

    def _with_bookings(self) -> Select[Tuple[AppointmentRequest]]:
        return select(AppointmentRequest).options(
            selectinload(AppointmentRequest.service_bookings),
            selectinload(AppointmentRequest.cancellation),
        )

    async def get_by_token(self, token: str) -> AppointmentRequest | None:
        stmt = self._with_bookings().where(AppointmentRequest.cancellation_token == token)
        return await self.session.scalar(stmt)

    async def find_by_reference_and_email(self, reference_number: str, email: str) -> AppointmentRequest | None:
        stmt = self._with_bookings().where(
            AppointmentRequest.reference_number == reference_number,
            func.lower(AppointmentRequest.customer_email) == email.lower(),
        )
        return await self.session.scalar(stmt)

    async def get_for_update(self, appointment_id: int) -> AppointmentRequest | None:
        stmt = self._with_bookings().where(AppointmentRequest.id == appointment_id).with_for_update()
        return await self.session.scalar(stmt)

    async def cancel(self, appointment: AppointmentRequest, log: CancellationLog) -> AppointmentRequest:
        self.session.add(appointment)
        self.session.add(log)
        await self.session.flush()
        return appointment
