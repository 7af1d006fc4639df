"""
Comparison Pipeline

Entry points tying the pieces together:

    config -> MetadataSource (per side) -> DatabaseSnapshot (per side)
           -> Reconciler -> ReportBuilder -> ComparisonReport

Any error aborts the whole run; no partial report is ever returned.
"""

import contextvars
import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from contextlib import ExitStack
from typing import Optional, Tuple

from schemadiff.config import CompareOptions, ConnectionConfig
from schemadiff.errors import ComparisonCancelled
from schemadiff.models import ComparisonReport, DatabaseSnapshot
from schemadiff.monitoring.metrics import ComparisonMetrics
from schemadiff.reconciliation import Reconciler, ReportBuilder
from schemadiff.sources import MetadataSource, capture_snapshot, create_source
from schemadiff.utils.correlation import clear_run_id, get_run_id, new_run_id

logger = logging.getLogger(__name__)


def compare(
    config_old: ConnectionConfig,
    config_new: ConnectionConfig,
    options: Optional[CompareOptions] = None,
    metrics: Optional[ComparisonMetrics] = None
) -> ComparisonReport:
    """
    Compare two databases described by connection configurations.

    Both configurations are validated before any connection is opened.

    Args:
        config_old: Connection configuration of the old database
        config_new: Connection configuration of the new database
        options: Comparison options
        metrics: Optional metrics to record the run into

    Returns:
        ComparisonReport

    Raises:
        ConfigurationError: If a configuration or option is invalid
        DatabaseConnectionError: If a database cannot be reached
        QueryError: If a metadata query fails
        ComparisonCancelled: If the run is cancelled
    """
    options = options or CompareOptions()
    options.validate()
    config_old.validate()
    config_new.validate()

    def run() -> ComparisonReport:
        with ExitStack() as stack:
            old_source = stack.enter_context(create_source(config_old))
            new_source = stack.enter_context(create_source(config_new))
            return _run_comparison(old_source, new_source, options, metrics)

    return _timed_run(run, metrics)


def compare_sources(
    old_source: MetadataSource,
    new_source: MetadataSource,
    options: Optional[CompareOptions] = None,
    metrics: Optional[ComparisonMetrics] = None
) -> ComparisonReport:
    """
    Compare two already opened metadata sources.

    The caller owns the sources and closes them.

    Args:
        old_source: Source for the old database
        new_source: Source for the new database
        options: Comparison options
        metrics: Optional metrics to record the run into

    Returns:
        ComparisonReport
    """
    options = options or CompareOptions()
    options.validate()

    return _timed_run(
        lambda: _run_comparison(old_source, new_source, options, metrics),
        metrics
    )


def _timed_run(run, metrics: Optional[ComparisonMetrics]) -> ComparisonReport:
    run_id = get_run_id()
    owns_run_id = run_id is None
    if owns_run_id:
        run_id = new_run_id()

    start_time = time.time()
    try:
        report = run()
    except Exception:
        duration = time.time() - start_time
        logger.error(f"Comparison {run_id} aborted after {duration:.2f}s")
        if metrics is not None:
            metrics.record_failure(duration)
        raise
    else:
        duration = time.time() - start_time
        if metrics is not None:
            metrics.record_comparison_run(report, duration)

        logger.info(
            f"Comparison {run_id} completed in {duration:.2f}s",
            extra={"duration": duration}
        )
        return report
    finally:
        if owns_run_id:
            clear_run_id()


def _run_comparison(
    old_source: MetadataSource,
    new_source: MetadataSource,
    options: CompareOptions,
    metrics: Optional[ComparisonMetrics]
) -> ComparisonReport:
    logger.info(f"Comparing {old_source.name} (old) with {new_source.name} (new)")

    old_snapshot, new_snapshot = _capture_both(old_source, new_source, options, metrics)

    reconciler = Reconciler(
        include_row_counts=options.include_row_counts,
        include_datatypes=options.include_datatypes
    )
    rows = reconciler.reconcile(old_snapshot, new_snapshot)

    return ReportBuilder().build(
        rows,
        old_name=old_snapshot.name,
        new_name=new_snapshot.name,
        include_row_counts=options.include_row_counts,
        include_datatypes=options.include_datatypes
    )


def _capture_side(
    source: MetadataSource,
    side: str,
    options: CompareOptions,
    metrics: Optional[ComparisonMetrics],
    cancel_event: Optional[threading.Event]
) -> DatabaseSnapshot:
    start_time = time.time()
    snapshot = capture_snapshot(
        source,
        include_row_counts=options.include_row_counts,
        table_filter=options.table_filter,
        max_workers=options.max_workers,
        cancel_event=cancel_event,
        include_views=options.include_views
    )
    if metrics is not None:
        metrics.observe_snapshot(side, time.time() - start_time)
    return snapshot


def _capture_both(
    old_source: MetadataSource,
    new_source: MetadataSource,
    options: CompareOptions,
    metrics: Optional[ComparisonMetrics]
) -> Tuple[DatabaseSnapshot, DatabaseSnapshot]:
    if not options.parallel_sides:
        old_snapshot = _capture_side(old_source, "old", options, metrics, options.cancel_event)
        new_snapshot = _capture_side(new_source, "new", options, metrics, options.cancel_event)
        return old_snapshot, new_snapshot

    # A failure on one side sets the event so the other side stops early.
    cancel_event = options.cancel_event or threading.Event()

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="schemadiff-side") as executor:
        futures = [
            executor.submit(
                contextvars.copy_context().run,
                _capture_side, source, side, options, metrics, cancel_event
            )
            for source, side in ((old_source, "old"), (new_source, "new"))
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        if any(future.exception() is not None for future in done):
            cancel_event.set()
        wait(futures)

    errors = [future.exception() for future in futures if future.exception() is not None]
    if errors:
        # Prefer the root cause over the cancellation it triggered
        raise next((e for e in errors if not isinstance(e, ComparisonCancelled)), errors[0])

    return futures[0].result(), futures[1].result()
