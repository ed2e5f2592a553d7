"""UTC timestamps and their wire format."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Timezone-aware now; every stored timestamp is UTC."""
    return datetime.now(UTC)


def to_iso(value: datetime | None) -> str | None:
    """ISO8601 for API responses; None passes through for unset timestamps."""
    return value.isoformat() if value is not None else None
