import re
from datetime import date

from app.utils.references import generate_cancellation_token, generate_reference_number


def test_reference_number_embeds_date() -> None:
    value = generate_reference_number(date(2026, 1, 9))
    assert re.fullmatch(r"REQ-20260109-\d{3}", value)


def test_cancellation_token_is_64_hex_chars() -> None:
    token = generate_cancellation_token()
    assert re.fullmatch(r"[0-9a-f]{64}", token)
    assert token != generate_cancellation_token()
