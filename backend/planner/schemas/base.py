"""Base schema configuration."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


def ensure_aware_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so comparisons against ``now`` never mix kinds."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
