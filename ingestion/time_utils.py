from __future__ import annotations

from datetime import datetime, timezone

EPOCH_UTC = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_utc(value: str | datetime | None, *, strict: bool = False) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            if strict:
                raise
            return None
    # stored rows are written as UTC, so a missing offset means UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc_iso(value: str | datetime | None, *, strict: bool = False) -> str | None:
    parsed = parse_utc(value, strict=strict)
    if parsed is None:
        return None
    return parsed.isoformat()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)
