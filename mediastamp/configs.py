import math
from dataclasses import dataclass
from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings

from mediastamp.const import MAX_OFFSET_SECONDS, MIN_OFFSET_SECONDS
from mediastamp.errors import OffsetOutOfRange


class Settings(BaseSettings):
    log_level: str = "INFO"  # The logging level to use.
    dry_run: bool = False  # Only report what would be renamed.
    tz_offset: float = Field(
        0.0,
        description="Offset in hours (can be fractional) added to timestamps read from files. "
        "Some cameras store the creation date in local time without a timezone.",
    )

    class Config:
        env_file = ".env"
        env_prefix = "MEDIASTAMP_"
        extra = "ignore"


@dataclass(frozen=True)
class RenameFlags:
    """Run-wide options threaded into per-file processing."""

    dry_run: bool = False
    offset: timedelta = timedelta(0)


def offset_from_hours(hours: float) -> timedelta:
    """
    Convert a fractional-hour offset to a whole-second timedelta.

    Raises:
        OffsetOutOfRange: if the rounded second count is not finite or does
            not fit in a signed 32-bit integer.
    """
    seconds = hours * 60.0 * 60.0
    if not math.isfinite(seconds):
        raise OffsetOutOfRange()
    # round half away from zero
    seconds = int(math.copysign(math.floor(abs(seconds) + 0.5), seconds))
    if not MIN_OFFSET_SECONDS <= seconds <= MAX_OFFSET_SECONDS:
        raise OffsetOutOfRange()
    return timedelta(seconds=seconds)


def build_flags(config: Settings) -> RenameFlags:
    """Validate settings once, before any file is touched."""
    return RenameFlags(dry_run=config.dry_run, offset=offset_from_hours(config.tz_offset))


settings = Settings()
