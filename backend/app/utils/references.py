import secrets
from datetime import date

from .time import local_today


def generate_reference_number(today: date | None = None) -> str:
    """REQ-YYYYMMDD-NNN, the number customers quote when looking up a booking."""
    day = today or local_today()
    return f"REQ-{day.strftime('%Y%m%d')}-{secrets.randbelow(1000):03d}"


def generate_cancellation_token() -> str:
    """256 bits of randomness as 64 hex characters, embedded in cancellation links."""
    return secrets.token_hex(32)
