from typing import Awaitable, Callable

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from .database import check_database
from .deps import get_session
from .routers import appointments, availability, staff
from .utils.logger import configure_logging
from .utils.request_id import REQUEST_ID_HEADER, resolve_request_id, set_request_id

configure_logging()

app = FastAPI(title="Vehicle Appointment API")


async def request_id_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app.middleware("http")(request_id_middleware)


@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)) -> JSONResponse:
    if not await check_database(session):
        return JSONResponse(status_code=503, content={"status": "unhealthy", "db": "unreachable"})
    return JSONResponse(content={"status": "ok", "db": "connected"})


app.include_router(availability.router)
app.include_router(appointments.router)
app.include_router(staff.router)
