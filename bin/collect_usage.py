#!/usr/bin/env python3
"""
collect_usage.py
================================================================================
Run the license status tool once and append the usage of every tracked
license to its delimited log file. Meant to be run from cron:

    */5 * * * *  collect-usage -c $HOME/conf/license_usage.conf.csh

Exit status: 0 ok (also when nothing matched), 1 configuration / tool
failure, 3 one or more usage files could not be written.
================================================================================
"""

import argparse
import logging
import sys

from usage_collector import find_status_tool, read_snapshot, run_status_tool, save_snapshot
from usage_config import load_config
from usage_errors import ConfigError, EmptyOutputError, UsageLogError
from usage_parser import UsageParser
from usage_writer import append_records, records_to_frame

logger = logging.getLogger("collect_usage")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_WRITE_FAILED = 3


def build_parser():
    parser = argparse.ArgumentParser(
        description="Record current license usage from the license status tool.")
    parser.add_argument("-c", "--config", help="csh config file with setenv lines")
    parser.add_argument("--tool", help="path to the status tool (skips the search)")
    parser.add_argument("-l", "--license", action="append", dest="licenses", metavar="NAME",
                        help="license to track; repeat for several (default: configured list)")
    parser.add_argument("-d", "--delimiter", help="field delimiter for usage files (default: tab)")
    parser.add_argument("-o", "--output-dir", help="directory of the usage files")
    parser.add_argument("--raw-dir", help="directory for --save-raw snapshots")
    parser.add_argument("--timeout", help="seconds to wait for the status tool")
    parser.add_argument("--input", metavar="FILE",
                        help="parse a saved status dump instead of running the tool")
    parser.add_argument("--save-raw", action="store_true",
                        help="keep a copy of the raw tool output")
    parser.add_argument("--dry-run", action="store_true",
                        help="print records to stdout instead of appending them")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def setup_logging(level, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def collect(config, input_path=None, save_raw=False):
    """Return the status tool output lines, from a saved dump or a fresh run."""
    if input_path:
        logger.info("Reading saved output %s", input_path)
        return read_snapshot(input_path)

    tool = find_status_tool(config)
    lines = run_status_tool(tool, config.tool_args, config.timeout)
    if save_raw:
        try:
            path = save_snapshot(lines, config.raw_dir)
            logger.info("Saved raw output to %s", path)
        except OSError as e:
            logger.error("Could not save raw output under %s: %s", config.raw_dir, e)
    return lines


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    overrides = {
        "STATUS_TOOL": args.tool,
        "USAGE_LICENSES": " ".join(args.licenses) if args.licenses else None,
        "USAGE_DELIMITER": args.delimiter,
        "USAGE_DIR": args.output_dir,
        "RAW_DIR": args.raw_dir,
        "STATUS_TOOL_TIMEOUT": args.timeout,
    }
    try:
        config = load_config(args.config, overrides=overrides)
    except ConfigError as e:
        setup_logging(level)
        logger.error("%s", e)
        return EXIT_FAILURE

    try:
        setup_logging(level, config.log_file)
    except OSError as e:
        setup_logging(level)
        logger.error("Cannot open log file %s: %s", config.log_file, e)
        return EXIT_FAILURE

    try:
        lines = collect(config, args.input, args.save_raw)
    except UsageLogError as e:
        logger.error("%s", e)
        if isinstance(e, EmptyOutputError) and e.stderr:
            logger.error("stderr: %s", e.stderr)
        return EXIT_FAILURE

    result = UsageParser.parse(lines, config.licenses)
    if result.skipped:
        logger.warning("%d summary line(s) could not be turned into records", result.skipped)
    if not result.records:
        logger.info("No tracked license found in %d line(s) of output", len(lines))
        return EXIT_OK

    if args.dry_run:
        records_to_frame(result.records).to_csv(sys.stdout, sep=config.delimiter, index=False)
        return EXIT_OK

    summary = append_records(result.records, config.usage_dir, config.delimiter)
    logger.info("Appended %d record(s) to %d file(s) in %s",
                summary.rows, len(summary.written), config.usage_dir)
    if not summary.ok:
        logger.error("%d usage file(s) could not be written", len(summary.failed))
        return EXIT_WRITE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
