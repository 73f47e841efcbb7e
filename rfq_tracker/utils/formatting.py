"""Display formatting shared by list views and the activity feed."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from ..config import settings


def format_time(ts: datetime | None) -> str:
    """datetime → '19 Oct, 02:30 PM' in the display timezone; 'N/A' if missing."""
    if ts is None:
        return "N/A"
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    local = ts.astimezone(ZoneInfo(settings.display_timezone))
    return local.strftime("%d %b, %I:%M %p")


def isoformat(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts else None


def shorten(text: str, limit: int = 50) -> str:
    """Trim long messages for activity summaries."""
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
