from app.deps import get_current_staff_id
from app.routers import staff
from fastapi.routing import APIRoute


def test_staff_router_requires_bearer_token() -> None:
    assert any(dep.dependency == get_current_staff_id for dep in staff.router.dependencies)

    for route in staff.router.routes:
        if not isinstance(route, APIRoute):
            continue
        assert any(dep.call == get_current_staff_id for dep in route.dependant.dependencies)
