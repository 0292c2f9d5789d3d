import logging
from datetime import datetime, timedelta
from email.utils import format_datetime
from pathlib import Path

from mediastamp.configs import RenameFlags
from mediastamp.const import UNIX_EPOCH
from mediastamp.errors import DateNotFound, RenameFailure
from mediastamp.resolvers import ResolverFactory

logger = logging.getLogger(__name__)


def apply_offset(creation_date: datetime, offset: timedelta) -> datetime:
    """Shift a timestamp by a fixed offset. No timezone rules are consulted."""
    try:
        return creation_date + offset
    except OverflowError as e:
        raise DateNotFound(f"creation date {creation_date.isoformat()} out of range after offset") from e


def unix_timestamp(value: datetime) -> int:
    """Whole seconds since the Unix epoch, rounded towards negative infinity."""
    return (value - UNIX_EPOCH) // timedelta(seconds=1)


def generate_new_path(path: Path, creation_date: datetime) -> Path:
    """
    Prepend the Unix timestamp and a space to the file name.

    Pure: the result depends only on the arguments and stays in the same
    directory. ``path`` must have a file name component.
    """
    if not path.name:
        raise ValueError(f"path has no file name: {path}")
    return path.with_name(f"{unix_timestamp(creation_date)} {path.name}")


def maybe_do_rename(path: Path, new_path: Path, dry_run: bool) -> None:
    if dry_run:
        return
    try:
        path.rename(new_path)
    except OSError as e:
        raise RenameFailure(new_path, e.strerror or str(e)) from e


def process(path: Path, flags: RenameFlags) -> Path:
    """
    Resolve, shift, report and rename a single file.

    Returns:
        The new path (also in dry-run mode, where nothing is renamed).
    """
    creation_date = apply_offset(ResolverFactory.resolve_creation_date(path), flags.offset)

    new_path = generate_new_path(path, creation_date)
    print(f"{path} -> {new_path} ({format_datetime(creation_date)})")
    maybe_do_rename(path, new_path, flags.dry_run)
    if not flags.dry_run:
        logger.debug("Renamed %s to %s", path, new_path)
    return new_path
