"""Utility modules."""
from quiz_session.utils.json_utils import (
    form_encode,
    json_compact,
    parse_body_text,
)
from quiz_session.utils.time_utils import format_clock, utc_now

__all__ = [
    "form_encode",
    "format_clock",
    "json_compact",
    "parse_body_text",
    "utc_now",
]
