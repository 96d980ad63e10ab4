from __future__ import annotations

import logging
import sys
from typing import Optional

from ..config import get_settings

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once per process. The audit logger keeps its own handler."""
    global _configured
    if _configured:
        return
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _configured = True
