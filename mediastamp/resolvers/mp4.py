import logging
import os
from datetime import datetime, timedelta

from mediastamp.const import MP4_EPOCH_OFFSET, UNIX_EPOCH
from mediastamp.containers.mp4_parser import MP4Header, open_mp4
from mediastamp.errors import ContainerParseFailure

logger = logging.getLogger(__name__)


def mp4_creation_date(header: MP4Header) -> datetime | None:
    """
    Movie header creation time as an aware UTC datetime.

    creation_time counts seconds since 1904-01-01T00:00:00Z. A value of zero
    is taken literally (the 1904 epoch), not as "unset". Returns None if the
    value falls outside the representable datetime range.
    """
    # convert from MP4 epoch (1904-01-01) to Unix epoch (1970-01-01)
    timestamp = header.mvhd.creation_time - MP4_EPOCH_OFFSET
    try:
        return UNIX_EPOCH + timedelta(seconds=timestamp)
    except OverflowError:
        logger.debug("[mp4] creation_time %d out of range", header.mvhd.creation_time)
        return None


def resolve_mp4(path: str | os.PathLike) -> datetime | None:
    try:
        header = open_mp4(path)
    except (OSError, ValueError) as e:
        raise ContainerParseFailure(str(e)) from e
    return mp4_creation_date(header)
