"""
Timestamp parsing for PostgREST values
"""
import re
from datetime import datetime, timezone
from typing import Any, Optional

FRACTION_PATTERN = re.compile(r'\.(\d+)')
SHORT_OFFSET_PATTERN = re.compile(r'([+-]\d{2})$')


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware datetime
    Args:
        value: datetime, ISO string or None
    Returns:
        UTC-aware datetime, or None for empty values
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        # Postgres trims trailing zeros from microseconds and may send "+00" offsets
        text = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        if ":" in text:
            text = SHORT_OFFSET_PATTERN.sub(r'\1:00', text)
        parsed = datetime.fromisoformat(text)
    else:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
