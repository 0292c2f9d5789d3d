import argparse
import logging
import sys
from pathlib import Path

from mediastamp import __version__
from mediastamp.configs import Settings, build_flags, settings
from mediastamp.errors import MediaStampError, OffsetOutOfRange
from mediastamp.renamer import process

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediastamp",
        description="Prefix media file names with the creation timestamp stored in the container.",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        default=None,
        help="Don't rename files, just print what would be done",
    )
    parser.add_argument(
        "-t",
        "--tz-offset",
        type=float,
        metavar="HOURS",
        help="Offset in hours (can be fractional) to add to timestamps read from files. "
        "Some cameras store the creation date in local time, without a timezone.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides MEDIASTAMP_LOG_LEVEL)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("paths", nargs="+", type=Path, help="Files to process")
    return parser


def configure(args: argparse.Namespace, base: Settings = settings) -> Settings:
    """Overlay command line flags on the environment/.env settings."""
    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.tz_offset is not None:
        overrides["tz_offset"] = args.tz_offset
    if args.log_level:
        overrides["log_level"] = args.log_level
    return base.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = configure(args)

    logging.basicConfig(level=config.log_level.upper(), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    try:
        flags = build_flags(config)
    except OffsetOutOfRange as e:
        logger.error("%s", e)
        return 1

    ok = True
    for path in args.paths:
        try:
            process(path, flags)
        except MediaStampError as e:
            logger.error("Error processing %s: %s", path, e)
            ok = False

    return 0 if ok else 1


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
