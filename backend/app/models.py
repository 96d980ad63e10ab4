from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, String, Text


class Base(DeclarativeBase):
    pass


class AppointmentStatus(StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class StaffRole(StrEnum):
    STAFF = "staff"
    ADMIN = "admin"


class CancelledVia(StrEnum):
    MAGIC_LINK = "magic_link"
    LOOKUP_PAGE = "lookup_page"
    STAFF = "staff"


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class StaffUser(Base):
    __tablename__ = "staff_users"
    __table_args__ = (UniqueConstraint("email", name="uq_staff_users_email"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[StaffRole] = mapped_column(_str_enum(StaffRole), nullable=False, default=StaffRole.STAFF)
    must_change_password: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class AppointmentRequest(Base):
    __tablename__ = "appointment_requests"
    __table_args__ = (
        CheckConstraint("number_of_vehicles >= 1", name="chk_appt_vehicles"),
        UniqueConstraint("reference_number", name="uq_appt_reference"),
        UniqueConstraint("cancellation_token", name="uq_appt_cancel_token"),
        Index("idx_appt_email", "customer_email"),
        Index("idx_appt_status", "status"),
        Index("idx_appt_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    reference_number: Mapped[str] = mapped_column(String(32), nullable=False)
    cancellation_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        _str_enum(AppointmentStatus),
        nullable=False,
        default=AppointmentStatus.CONFIRMED,
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    number_of_vehicles: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    id_number: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    services_requested: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    additional_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    service_bookings: Mapped[list["ServiceBooking"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="ServiceBooking.id",
    )
    cancellation: Mapped[Optional["CancellationLog"]] = relationship(back_populates="appointment")


class ServiceBooking(Base):
    __tablename__ = "service_bookings"
    __table_args__ = (
        CheckConstraint("vehicle_count >= 1", name="chk_booking_vehicles"),
        Index("idx_booking_slot", "service_name", "scheduled_date", "scheduled_time"),
        Index("idx_booking_appt", "appointment_request_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    appointment_request_id: Mapped[int] = mapped_column(
        ForeignKey("appointment_requests.id", ondelete="CASCADE"), nullable=False
    )
    service_name: Mapped[str] = mapped_column(String(100), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(16), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vehicle_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    appointment: Mapped["AppointmentRequest"] = relationship(back_populates="service_bookings")


class CancellationLog(Base):
    __tablename__ = "cancellation_logs"
    __table_args__ = (UniqueConstraint("appointment_request_id", name="uq_cancel_appt"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    appointment_request_id: Mapped[int] = mapped_column(ForeignKey("appointment_requests.id"), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    services_requested: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    scheduled_dates: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_via: Mapped[CancelledVia] = mapped_column(_str_enum(CancelledVia), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    cancelled_by_staff: Mapped[Optional[int]] = mapped_column(ForeignKey("staff_users.id"), nullable=True)
    cancelled_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    appointment: Mapped["AppointmentRequest"] = relationship(back_populates="cancellation")
