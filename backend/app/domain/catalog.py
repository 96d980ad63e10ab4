from typing import Dict, Tuple

TIME_SLOTS: Tuple[str, ...] = (
    "08:30 AM",
    "09:30 AM",
    "10:30 AM",
    "11:30 AM",
    "12:30 PM",
    "01:30 PM",
    "02:30 PM",
)

WEIGHING = "Vehicle Weighing"
INSPECTION = "Vehicle Inspection"
REGISTRATION = "Vehicle Registration/Customer Service Center"

# Weighing -> Inspection -> Registration
SERVICE_ORDER: Tuple[str, ...] = (WEIGHING, INSPECTION, REGISTRATION)

SERVICE_CAPACITY: Dict[str, int] = {
    WEIGHING: 12,
    INSPECTION: 12,
    REGISTRATION: 5,
}
DEFAULT_CAPACITY = 5

SERVICE_ALIASES: Dict[str, str] = {
    "weighing": WEIGHING,
    "inspection": INSPECTION,
    "registration": REGISTRATION,
}


def time_index(label: str) -> int:
    """Position of `label` in TIME_SLOTS, -1 when unknown."""
    try:
        return TIME_SLOTS.index(label)
    except ValueError:
        return -1


def max_capacity(service_name: str) -> int:
    return SERVICE_CAPACITY.get(service_name, DEFAULT_CAPACITY)


def normalize_service_name(value: str) -> str:
    """Accept either a short alias or a full service name. Raises ValueError otherwise."""
    name = SERVICE_ALIASES.get(value.strip().lower(), value.strip())
    if name not in SERVICE_CAPACITY:
        raise ValueError(f"unknown service: {value}")
    return name
