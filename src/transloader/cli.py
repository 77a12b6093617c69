"""
Command line interface.

Usage::

    transload <get|put> <metadata|observations> --source SOURCE --station ID \\
        --cache DIR [--user USER] [--dataurl URL ...] [--date DATE] \\
        [--destination URL] [--allow ID ... | --block ID ...]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import TransloaderConfig
from .exceptions import TimestampError, TransloaderError
from .http import HTTPClient
from .providers import PROVIDERS, get_provider
from .timeutil import parse_interval

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send log records for the package to stderr."""
    root = logging.getLogger("transloader")
    root.setLevel(level)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transload",
        description="Synchronize weather station data with a SensorThings API.",
    )
    parser.add_argument("verb", type=str.lower, choices=["get", "put"])
    parser.add_argument(
        "object", type=str.lower, choices=["metadata", "observations"]
    )
    parser.add_argument(
        "--source", required=True, choices=sorted(PROVIDERS), help="Data source"
    )
    parser.add_argument("--station", required=True, help="Station identifier")
    parser.add_argument("--user", help="User account identifier for Data Garrison")
    parser.add_argument(
        "--dataurl",
        dest="data_urls",
        action="append",
        default=[],
        help="Campbell Scientific data file URL (may be repeated)",
    )
    parser.add_argument("--cache", required=True, help="Path of the filesystem cache")
    parser.add_argument(
        "--date",
        help="ISO8601 date, datetime or start/end interval for 'put observations'; "
        "also accepts 'latest'",
    )
    parser.add_argument("--destination", help="Base URL of the SensorThings API")

    filters = parser.add_mutually_exclusive_group()
    filters.add_argument(
        "--allow", action="append", help="Only include this property (may be repeated)"
    )
    filters.add_argument(
        "--block", action="append", help="Exclude this property (may be repeated)"
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Reject argument combinations argparse cannot express; exits with status 2."""
    if not Path(args.cache).is_dir():
        parser.error(f"cache directory does not exist: {args.cache}")

    if args.verb == "put" and not args.destination:
        parser.error("missing --destination for 'put'")

    if args.verb == "put" and args.object == "observations":
        if not args.date:
            parser.error("missing --date for 'put observations'")
        if args.date.strip().lower() != "latest":
            try:
                parse_interval(args.date)
            except TimestampError as e:
                parser.error(f"invalid date '{args.date}': {e}")

    if args.source == "data_garrison" and not args.user:
        parser.error("--user is required for data_garrison")

    if (
        args.source == "campbell_scientific"
        and args.verb == "get"
        and args.object == "metadata"
        and not args.data_urls
    ):
        parser.error("at least one --dataurl is required for campbell_scientific")


def _new_station(provider, args: argparse.Namespace):
    if args.source == "data_garrison":
        return provider.new_station(args.user, args.station)
    if args.source == "campbell_scientific":
        return provider.new_station(args.station, args.data_urls or None)
    return provider.new_station(args.station)


def _get_station(provider, args: argparse.Namespace):
    if args.source == "data_garrison":
        return provider.get_station(args.user, args.station)
    if args.source == "campbell_scientific":
        return provider.get_station(args.station, args.data_urls or None)
    return provider.get_station(args.station)


def run(args: argparse.Namespace, config: TransloaderConfig) -> None:
    with HTTPClient(config) as http:
        provider = get_provider(args.source, args.cache, http, config)

        if args.verb == "get" and args.object == "metadata":
            station = _new_station(provider, args)
            station.download_metadata()
            path = station.save_metadata()
            logger.info(f"Saved metadata for station {station.id} to {path}")

        elif args.verb == "get" and args.object == "observations":
            station = _get_station(provider, args)
            records = station.download_observations()
            logger.info(f"Downloaded {len(records)} observations for station {station.id}")

        elif args.verb == "put" and args.object == "metadata":
            station = _get_station(provider, args)
            station.upload_metadata(args.destination, args.allow, args.block)

        else:
            station = _get_station(provider, args)
            count = station.upload_observations(
                args.destination, args.date, args.allow, args.block
            )
            logger.info(f"Uploaded {count} observations for station {station.id}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(parser, args)

    configure_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = TransloaderConfig.from_env()
        if not args.verbose:
            logging.getLogger("transloader").setLevel(config.log_level)
        run(args, config)
    except (TransloaderError, OSError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
