"""
Shared base model and lenient coercion helpers for profile documents

Profile documents were written by several generations of clients, so
numbers may arrive as strings, dates as epoch numbers or Firestore
timestamp maps, and counters may be missing altogether. The helpers here
turn any of that into a usable value instead of failing.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

# Epoch values above this are milliseconds, below it seconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


class DocumentModel(BaseModel):
    """Base for everything stored in or returned from a profile document"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, the shape stored in the database"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def coerce_count(value: Any) -> int:
    """Non-negative integer, 0 for anything unusable"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
    else:
        return 0
    if isinstance(number, float) and not math.isfinite(number):  # NaN or infinity
        return 0
    return max(0, int(round(number)))


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Timezone-aware UTC datetime, None for anything unusable"""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            if value <= 0:
                return None
            seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return coerce_datetime(float(text))
            except ValueError:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        elif isinstance(value, dict) and "seconds" in value:
            # Firestore Timestamp serialized as a map
            return coerce_datetime(coerce_count(value.get("seconds")))
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
