from __future__ import annotations

from datetime import datetime, timezone as dt_timezone


class TimezoneUtils:
    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def ensure_aware(value: datetime | None) -> datetime | None:
        """SQLite hands back naive datetimes; treat them as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt_timezone.utc)
        return value

    @staticmethod
    def isoformat(value: datetime | None) -> str | None:
        aware = TimezoneUtils.ensure_aware(value)
        return aware.isoformat() if aware is not None else None
