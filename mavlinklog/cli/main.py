#!/usr/bin/env python3
"""
Command line tools for MAV-LOG and TLOG files.

Usage:
    # Show the header of a MAV-LOG file
    mavlinklog info flight.mav

    # Print every entry of a log
    mavlinklog dump flight.mav
    mavlinklog dump --tlog flight.tlog --limit 20

    # Re-log the frames of a TLOG into a rotating MAV-LOG
    mavlinklog convert flight.tlog flight.mav --max-bytes 1048576 --backup-count 3
"""

import argparse
import sys
from typing import List, Optional

from mavlinklog.core.errors import MavLogError
from mavlinklog.core.log.header import FormatFlags, MessageDefinition
from mavlinklog.core.log.reader import MavLogReader, MavParser
from mavlinklog.core.log.tlog import TlogReader
from mavlinklog.core.log.writer import RotatingMavLogger
from mavlinklog.core.wire.codec import WireCodec
from mavlinklog.utils.config import Config
from mavlinklog.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mavlinklog",
        description="Inspect and convert MAVLink telemetry logs (MAV-LOG and TLOG)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML configuration file",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from configuration)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["json", "console"],
        help="Logging output format (default: from configuration)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Print the header of a MAV-LOG file")
    info.add_argument("path", help="MAV-LOG file")

    dump = subparsers.add_parser("dump", help="Print the entries of a log file")
    dump.add_argument("path", help="MAV-LOG or TLOG file")
    dump.add_argument("--tlog", action="store_true", help="read the file as a TLOG")
    dump.add_argument("--dialect", type=str, default=None, help="MAVLink dialect override")
    dump.add_argument("--limit", type=int, default=None, help="stop after this many entries")

    convert = subparsers.add_parser("convert", help="Convert a TLOG file into a MAV-LOG file")
    convert.add_argument("tlog_path", help="source TLOG file")
    convert.add_argument("mav_path", help="destination MAV-LOG file")
    convert.add_argument("--max-bytes", type=int, default=None, help="rotation threshold in bytes")
    convert.add_argument("--backup-count", type=int, default=None, help="rotated files to keep")
    convert.add_argument("--mavlink-only", action="store_true", help="omit type and size fields")
    convert.add_argument("--no-timestamp", action="store_true", help="omit record timestamps")
    convert.add_argument("--dialect", type=str, default=None, help="MAVLink dialect")

    return parser.parse_args(argv)


def cmd_info(args: argparse.Namespace, config: Config) -> int:
    with MavLogReader(args.path) as reader:
        header = reader.header
        flags = header.format_flags
        print(f"uuid:               {header.uuid}")
        print(f"timestamp_us:       {header.timestamp_us}")
        print(f"src_application_id: {header.src_application_id}")
        print(f"format_version:     {header.format_version}")
        print(f"mavlink_only:       {flags.mavlink_only}")
        print(f"no_timestamp:       {flags.no_timestamp}")

        definition = header.message_definition
        if definition is None:
            print(f"message_definition: <invalid: {header.definition_error}>")
            return 0

        print(f"mavlink_version:    {definition.version_major}.{definition.version_minor}")
        print(f"dialect:            {definition.dialect}")
        print(f"payload_type:       {definition.payload_type.name}")
        print(f"payload_size:       {definition.size}")
        for url in definition.urls():
            print(f"definition_url:     {url}")
    return 0


def open_reader(path: str, tlog: bool, dialect: Optional[str]) -> MavParser:
    if tlog:
        return TlogReader(path, dialect=dialect or WireCodec.DEFAULT_DIALECT)
    return MavLogReader(path, dialect=dialect)


def cmd_dump(args: argparse.Namespace, config: Config) -> int:
    with open_reader(args.path, args.tlog, args.dialect) as reader:
        for count, entry in enumerate(reader, start=1):
            print(entry.describe())
            if args.limit is not None and count >= args.limit:
                break

        print(
            f"{reader.entries_read} entries, {reader.resync_count} resyncs, "
            f"{reader.skipped_bytes} bytes skipped",
            file=sys.stderr,
        )
    return 0


def cmd_convert(args: argparse.Namespace, config: Config) -> int:
    overrides = {}
    if args.max_bytes is not None:
        overrides["max_bytes"] = args.max_bytes
    if args.backup_count is not None:
        overrides["backup_count"] = args.backup_count

    mavlink_only = args.mavlink_only or bool(config.get("logger.mavlink_only", False))
    no_timestamp = args.no_timestamp or bool(config.get("logger.no_timestamp", False))
    overrides["format_flags"] = FormatFlags(mavlink_only=mavlink_only, no_timestamp=no_timestamp)

    dialect = args.dialect or config.get("definition.dialect", WireCodec.DEFAULT_DIALECT)
    overrides["message_definition"] = MessageDefinition(
        version_major=config.get("definition.version_major", 2),
        version_minor=config.get("definition.version_minor", 0),
        dialect=dialect,
    )

    with TlogReader(args.tlog_path, dialect=dialect) as reader:
        # The header carries the first TLOG time, records their offset from it.
        first = next(iter(reader), None)
        if first is not None:
            overrides["now_unix_us"] = lambda: first.timestamp

        with RotatingMavLogger.from_config(args.mav_path, config, **overrides) as writer:
            if first is not None:
                writer.write_frame_bytes(first.body.frame, timestamp_us=0)
            for entry in reader:
                writer.write_frame_bytes(
                    entry.body.frame,
                    timestamp_us=max(entry.timestamp - first.timestamp, 0),
                )

            logger.info(
                "Converted TLOG",
                source=args.tlog_path,
                destination=args.mav_path,
                records=writer.records_written,
                skipped_bytes=reader.skipped_bytes,
            )
    return 0


COMMANDS = {
    "info": cmd_info,
    "dump": cmd_dump,
    "convert": cmd_convert,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = Config(args.config)

    configure_logging(
        log_level=args.log_level or config.get("logging.level", "INFO"),
        log_format=args.log_format or config.get("logging.format", "console"),
        log_output=config.get("logging.output", "stderr"),
    )

    try:
        return COMMANDS[args.command](args, config)
    except (MavLogError, OSError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
