"""
Creation date resolution for Matroska/WebM files.

Precedence, first match wins:

1. The first ``com.apple.quicktime.creationdate`` SimpleTag (name compared
   case-insensitively) of each Tag block, in stored order, whose value is a
   string holding a full ISO-8601 timestamp with a UTC offset. Apple devices
   write this tag with timezone information even after re-muxing from MOV.
2. The Segment Info DateUTC.

A binary or unparseable tag value is treated as absent and resolution falls
through; it is never an error.
"""

import logging
import os
import re
from datetime import datetime

from mediastamp.const import QUICKTIME_CREATION_DATE_TAG
from mediastamp.containers.ebml_parser import MatroskaDocument, Tag, open_matroska
from mediastamp.errors import ContainerParseFailure

logger = logging.getLogger(__name__)

# Calendar date, extended or basic form, then the "T" designator
_DATE_TIME_PREFIX = re.compile(r"\d{4}(?:-\d{2}-\d{2}|\d{4})[Tt]")


def parse_iso8601(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; date, time and UTC offset are all required."""
    # fromisoformat accepts any separator character, ISO-8601 only "T"
    if not _DATE_TIME_PREFIX.match(value):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def _tag_creation_date(tag: Tag) -> datetime | None:
    simple = next(
        (s for s in tag.simple if s.name.lower() == QUICKTIME_CREATION_DATE_TAG),
        None,
    )
    if simple is None:
        return None
    if not isinstance(simple.value, str):
        logger.debug("[matroska] %s has a non-string value, ignoring", simple.name)
        return None
    parsed = parse_iso8601(simple.value)
    if parsed is None:
        logger.debug("[matroska] Unparseable %s value %r, ignoring", simple.name, simple.value)
    return parsed


def quicktime_creation_date(doc: MatroskaDocument) -> datetime | None:
    for tag in doc.tags:
        parsed = _tag_creation_date(tag)
        if parsed is not None:
            return parsed
    return None


def mkv_creation_date(doc: MatroskaDocument) -> datetime | None:
    """Best-guess creation date, or None if the document carries none."""
    parsed = quicktime_creation_date(doc)
    if parsed is not None:
        logger.debug("[matroska] Using QuickTime creation date tag: %s", parsed.isoformat())
        return parsed
    if doc.info.date_utc is not None:
        logger.debug("[matroska] Using segment DateUTC: %s", doc.info.date_utc.isoformat())
    return doc.info.date_utc


def resolve_matroska(path: str | os.PathLike) -> datetime | None:
    try:
        doc = open_matroska(path)
    except (OSError, ValueError) as e:
        raise ContainerParseFailure(str(e)) from e
    return mkv_creation_date(doc)
