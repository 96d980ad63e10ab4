from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import AlreadyCancelledError, AppointmentNotFoundError, CapacityError, OrderingError
from ..infrastructure.repositories import SqlAlchemyAppointmentRepository, SqlAlchemyServiceBookingRepository
from ..models import CancelledVia
from ..schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentCreated,
    AppointmentLookup,
    AppointmentRead,
    CancellationRead,
)
from ..usecases import appointments as appointment_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.rate_limit import rate_limit

router = APIRouter(prefix="", tags=["appointments"])

TEN_MINUTES = 10 * 60


def _error(status_code: int, message: str, **extra: Any) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"message": message, **extra})


def ordering_error(exc: OrderingError) -> HTTPException:
    violation = exc.violation
    return _error(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        error_type="constraint",
        service=violation.service,
        slot_index=violation.slot_index,
        reason=violation.reason,
    )


def already_cancelled(exc: AlreadyCancelledError) -> HTTPException:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), already_cancelled=True)


def audit_failed(exc: RuntimeError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")


@router.post("/requests", response_model=AppointmentCreated, status_code=status.HTTP_201_CREATED)
async def create_appointment_request(
    payload: AppointmentCreate,
    session: AsyncSession = Depends(get_session),
    client_ip: str = Depends(rate_limit("requests", limit=10, window=TEN_MINUTES)),
) -> AppointmentCreated:
    booking_repo = SqlAlchemyServiceBookingRepository(session)
    appointment_repo = SqlAlchemyAppointmentRepository(session)
    draft = payload.to_draft()
    async with session.begin():
        try:
            appointment = await appointment_usecase.submit_appointment(booking_repo, appointment_repo, draft)
        except OrderingError as exc:
            raise ordering_error(exc)
        except CapacityError as exc:
            raise _error(status.HTTP_409_CONFLICT, str(exc), error_type="capacity")
        try:
            emit_audit_log(
                action="appointment.created",
                initiator="customer",
                appointment_id=appointment.id,
                reference_number=appointment.reference_number,
                status_to=appointment.status,
                services=list(appointment.services_requested),
                vehicle_count=appointment.number_of_vehicles,
                extra={"client_ip": client_ip},
            )
        except RuntimeError as exc:
            raise audit_failed(exc)

    return AppointmentCreated(
        reference_number=appointment.reference_number,
        appointment=AppointmentRead.from_db(appointment),
    )


@router.get("/appointments/{token}", response_model=AppointmentRead)
async def get_appointment_by_token(
    token: str = Path(..., min_length=16, max_length=128),
    session: AsyncSession = Depends(get_session),
) -> AppointmentRead:
    repo = SqlAlchemyAppointmentRepository(session)
    try:
        appointment = await appointment_usecase.get_by_cancellation_token(repo, token=token)
    except AppointmentNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, str(exc))
    except AlreadyCancelledError as exc:
        raise already_cancelled(exc)
    return AppointmentRead.from_db(appointment)


@router.post("/appointments/lookup", response_model=AppointmentRead)
async def lookup_appointment(
    payload: AppointmentLookup,
    session: AsyncSession = Depends(get_session),
    client_ip: str = Depends(rate_limit("lookup", limit=20, window=TEN_MINUTES)),
) -> AppointmentRead:
    repo = SqlAlchemyAppointmentRepository(session)
    try:
        appointment = await appointment_usecase.lookup_appointment(
            repo,
            reference_number=payload.reference_number,
            email=payload.email,
        )
    except AppointmentNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, str(exc))
    except AlreadyCancelledError as exc:
        raise already_cancelled(exc)
    return AppointmentRead.from_db(appointment)


@router.post("/appointments/cancel", response_model=CancellationRead)
async def cancel_appointment(
    payload: AppointmentCancel,
    session: AsyncSession = Depends(get_session),
    client_ip: str = Depends(rate_limit("cancel", limit=10, window=TEN_MINUTES)),
) -> CancellationRead:
    repo = SqlAlchemyAppointmentRepository(session)
    async with session.begin():
        try:
            updated, previous = await appointment_usecase.cancel_appointment(
                repo,
                appointment_id=payload.appointment_id,
                cancelled_via=CancelledVia(payload.cancelled_via),
                reason=payload.reason,
                ip_address=client_ip,
                cancellation_token=payload.cancellation_token,
                customer_email=payload.email,
            )
        except AppointmentNotFoundError as exc:
            raise _error(status.HTTP_404_NOT_FOUND, str(exc))
        except AlreadyCancelledError as exc:
            raise already_cancelled(exc)
        try:
            emit_audit_log(
                action="appointment.cancelled",
                initiator="customer",
                appointment_id=updated.id,
                reference_number=updated.reference_number,
                status_from=previous,
                status_to=updated.status,
                message=payload.reason,
                extra={"cancelled_via": payload.cancelled_via},
            )
        except RuntimeError as exc:
            raise audit_failed(exc)

    return CancellationRead(reference_number=updated.reference_number, status=updated.status)
