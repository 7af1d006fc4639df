#!/usr/bin/env python3
"""
Schema Comparison Tool for Database Migration Verification

Compares tables, columns, column data types and optionally row counts of an
"old" and a "new" database and prints a report of the differences.

Usage:
    schemadiff --config compare.yml
    schemadiff --config compare.yml --row-counts --format html --output report.html
    schemadiff --old-host db1 --old-user root --old-database shop \\
               --new-host db2 --new-user root --new-database shop_v2 \\
               --old-driver mysql --new-driver mysql --fail-on-diff

Exit codes:
    0  comparison finished (differences allowed)
    1  differences found and --fail-on-diff given
    2  configuration, connection or query error; no report written
"""

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from schemadiff.config import load_config
from schemadiff.errors import SchemaDiffError
from schemadiff.logging_config import configure_logging
from schemadiff.monitoring.metrics import ComparisonMetrics
from schemadiff.pipeline import compare
from schemadiff.rendering import DEFAULT_DELIMITER, FORMATS, render
from schemadiff.utils.correlation import clear_run_id, new_run_id

logger = logging.getLogger("schemadiff.cli")

EXIT_OK = 0
EXIT_DIFFERENCES = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemadiff",
        description="Compare schema and row counts of two databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument("--config", "-c", help="YAML configuration file")

    for side in ("old", "new"):
        group = parser.add_argument_group(f"{side} database")
        group.add_argument(f"--{side}-driver", choices=["mysql", "mariadb", "postgresql", "postgres"],
                           help="Database driver")
        group.add_argument(f"--{side}-host", help="Database host")
        group.add_argument(f"--{side}-port", type=int, help="Database port")
        group.add_argument(f"--{side}-user", help="Database user")
        group.add_argument(f"--{side}-password", help="Database password")
        group.add_argument(f"--{side}-database", help="Database name")
        group.add_argument(f"--{side}-schema", help="Schema to inspect (PostgreSQL)")
        group.add_argument(f"--{side}-label", help="Name shown in the report")

    options = parser.add_argument_group("comparison")
    options.add_argument("--row-counts", action=argparse.BooleanOptionalAction, default=None,
                         help="Count and compare rows per table")
    options.add_argument("--datatypes", action=argparse.BooleanOptionalAction, default=None,
                         help="Compare column data types")
    options.add_argument("--views", action=argparse.BooleanOptionalAction, default=None,
                         help="Compare views along with base tables")
    options.add_argument("--include", nargs="+", metavar="PATTERN", help="Only compare matching tables")
    options.add_argument("--exclude", nargs="+", metavar="PATTERN", help="Skip matching tables")
    options.add_argument("--workers", type=int, help="Worker threads per database for table queries")
    options.add_argument("--parallel", action=argparse.BooleanOptionalAction, default=None,
                         help="Capture both databases concurrently")

    output = parser.add_argument_group("output")
    output.add_argument("--format", "-f", choices=FORMATS, default="text", help="Report format")
    output.add_argument("--output", "-o", help="Write the report to a file instead of stdout")
    output.add_argument("--delimiter", default=DEFAULT_DELIMITER, help="Separator for column name lists")
    output.add_argument("--fail-on-diff", action="store_true", help="Exit with 1 if differences are found")
    output.add_argument("--pushgateway", help="Push run metrics to this Prometheus Pushgateway")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--json-logs", action="store_true", default=None, help="Structured JSON logging")

    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Collect the CLI flags that override file and environment settings."""
    overrides: Dict[str, Dict[str, Any]] = {}

    for side in ("old", "new"):
        overrides[side] = {
            key: getattr(args, f"{side}_{flag}")
            for flag, key in (
                ("driver", "driver"),
                ("host", "host"),
                ("port", "port"),
                ("user", "user"),
                ("password", "password"),
                ("database", "database_name"),
                ("schema", "schema"),
                ("label", "label"),
            )
        }

    overrides["options"] = {
        "include_row_counts": args.row_counts,
        "include_datatypes": args.datatypes,
        "include_views": args.views,
        "include_tables": args.include,
        "exclude_tables": args.exclude,
        "max_workers": args.workers,
        "parallel_sides": args.parallel,
    }
    return overrides


def install_cancel_handler(cancel_event: threading.Event):
    """
    First Ctrl-C requests cancellation; a second one interrupts immediately.

    Returns:
        The previous SIGINT handler
    """
    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Cancellation requested, stopping before the next table")
        cancel_event.set()

    return signal.signal(signal.SIGINT, handler)


def write_output(content: str, output: Optional[str]) -> None:
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Report written to {path}")
    else:
        sys.stdout.write(content)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, json_logs=args.json_logs)
    run_id = new_run_id()
    logger.debug(f"Run ID: {run_id}")

    metrics = ComparisonMetrics() if args.pushgateway else None
    cancel_event = threading.Event()
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = install_cancel_handler(cancel_event)

    try:
        config = load_config(args.config, overrides=overrides_from_args(args))
        options = replace(config.options, cancel_event=cancel_event)

        report = compare(config.old, config.new, options, metrics=metrics)
        content = render(report, args.format, args.delimiter)

        try:
            write_output(content, args.output)
        except OSError as e:
            logger.error(f"Could not write report: {e}", exc_info=args.verbose)
            return EXIT_ERROR

    except SchemaDiffError as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return EXIT_ERROR

    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
        if metrics is not None:
            try:
                metrics.push(args.pushgateway, grouping_key={"run_id": run_id})
            except OSError as e:
                logger.warning(f"Failed to push metrics to {args.pushgateway}: {e}")
        clear_run_id()

    if report.has_differences:
        logger.info("Differences found between the databases")
        if args.fail_on_diff:
            return EXIT_DIFFERENCES
    else:
        logger.info("No differences found")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
