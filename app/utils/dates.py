from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps (SQLite hands them back without tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_display_date(value: Optional[Union[date, datetime]], today: Optional[date] = None) -> str:
    """'June 5, 2025'; falls back to today's date marked '(Today)'."""
    if value is None:
        today = today or utcnow().date()
        return f"{today:%B} {today.day}, {today.year} (Today)"
    return f"{value:%B} {value.day}, {value.year}"
