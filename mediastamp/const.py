from datetime import datetime, timezone
from enum import Enum


class ContainerKind(Enum):
    MATROSKA = "matroska"
    MP4 = "mp4"


# Lower-cased extension (without the dot) -> container kind
CONTAINER_EXTENSIONS = {
    "mkv": ContainerKind.MATROSKA,
    "mov": ContainerKind.MP4,
    "mp4": ContainerKind.MP4,
    "m4v": ContainerKind.MP4,
}

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Seconds between the MP4 epoch (1904-01-01) and the Unix epoch (1970-01-01)
MP4_EPOCH_OFFSET = 2082844800

QUICKTIME_CREATION_DATE_TAG = "com.apple.quicktime.creationdate"

# Offsets are carried as a signed 32-bit second count
MIN_OFFSET_SECONDS = -(2**31)
MAX_OFFSET_SECONDS = 2**31 - 1
