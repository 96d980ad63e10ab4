from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_staff_id, get_session
from ..domain.catalog import normalize_service_name
from ..domain.errors import AlreadyCancelledError, AppointmentNotFoundError
from ..infrastructure.repositories import SqlAlchemyAppointmentRepository, SqlAlchemyServiceBookingRepository
from ..models import CancelledVia
from ..schemas import CancellationRead, StaffCancel, StaffServiceBookingRead
from ..usecases import appointments as appointment_usecase
from ..usecases import staff as staff_usecase
from ..utils.audit_log import emit_audit_log
from .appointments import already_cancelled, audit_failed

router = APIRouter(prefix="/staff", tags=["staff"], dependencies=[Depends(get_current_staff_id)])


@router.get("/service-bookings", response_model=List[StaffServiceBookingRead])
async def list_service_bookings(
    service: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=255),
    session: AsyncSession = Depends(get_session),
) -> list[StaffServiceBookingRead]:
    try:
        service_name = normalize_service_name(service) if service and service != "all" else None
        bookings = await staff_usecase.list_service_bookings(
            SqlAlchemyServiceBookingRepository(session),
            service_name=service_name,
            start=start_date,
            end=end_date,
            search=search,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [StaffServiceBookingRead.from_db(booking) for booking in bookings]


@router.post("/appointments/{appointment_id}/cancel", response_model=CancellationRead)
async def staff_cancel_appointment(
    payload: StaffCancel,
    appointment_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    staff_id: int = Depends(get_current_staff_id),
) -> CancellationRead:
    repo = SqlAlchemyAppointmentRepository(session)
    async with session.begin():
        try:
            updated, previous = await appointment_usecase.cancel_appointment(
                repo,
                appointment_id=appointment_id,
                cancelled_via=CancelledVia.STAFF,
                reason=payload.reason,
                staff_id=staff_id,
            )
        except AppointmentNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="appointment not found")
        except AlreadyCancelledError as exc:
            raise already_cancelled(exc)
        try:
            emit_audit_log(
                action="appointment.staff_cancelled",
                initiator="staff",
                appointment_id=updated.id,
                reference_number=updated.reference_number,
                staff_id=staff_id,
                status_from=previous,
                status_to=updated.status,
                message=payload.reason,
            )
        except RuntimeError as exc:
            raise audit_failed(exc)

    return CancellationRead(reference_number=updated.reference_number, status=updated.status)
