"""Core utilities for the Clerk user sync API.

This module exports commonly used utilities for easy importing:
    from core import get_logger, set_wide_event_fields
"""

from core.logger import get_logger
from core.middleware import set_wide_event_fields

__all__ = [
    "get_logger",
    "set_wide_event_fields",
]
