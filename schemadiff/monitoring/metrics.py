"""
Prometheus Metrics for Schema Comparison

Metrics for comparison runs: run counts, durations, tables compared and
differences found. Comparison runs are short-lived, so metrics are pushed to
a Prometheus Pushgateway instead of being scraped.
"""

import logging
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

from schemadiff.models import ComparisonReport

logger = logging.getLogger(__name__)

DIFFERENCE_KINDS = (
    "missing_old",
    "missing_new",
    "extra_columns_old",
    "extra_columns_new",
    "datatype_changed",
    "row_mismatch",
)


def count_differences(report: ComparisonReport) -> Dict[str, int]:
    """
    Count differences in a report by kind.

    Args:
        report: Comparison report

    Returns:
        Dictionary keyed by DIFFERENCE_KINDS
    """
    summary = report.summary
    return {
        "missing_old": summary.total_tables - summary.exists_count_old,
        "missing_new": summary.total_tables - summary.exists_count_new,
        "extra_columns_old": summary.extra_columns_total_old,
        "extra_columns_new": summary.extra_columns_total_new,
        "datatype_changed": summary.datatype_changed_tables,
        "row_mismatch": summary.row_mismatch_tables,
    }


class ComparisonMetrics:
    """Prometheus metrics for comparison runs."""

    def __init__(self, namespace: str = "schemadiff", registry: Optional[CollectorRegistry] = None):
        """
        Initialize comparison metrics.

        Args:
            namespace: Metric name prefix
            registry: Prometheus registry (a fresh one if not provided)
        """
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()

        self.comparison_runs_total = Counter(
            f"{namespace}_comparison_runs_total",
            "Total number of comparison runs",
            ["status"],
            registry=self.registry
        )

        self.comparison_duration_seconds = Histogram(
            f"{namespace}_comparison_duration_seconds",
            "Duration of comparison runs in seconds",
            buckets=[0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
            registry=self.registry
        )

        self.snapshot_duration_seconds = Histogram(
            f"{namespace}_snapshot_duration_seconds",
            "Duration of snapshot capture in seconds",
            ["side"],
            buckets=[0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
            registry=self.registry
        )

        self.tables_compared = Gauge(
            f"{namespace}_tables_compared",
            "Number of tables in the last comparison",
            registry=self.registry
        )

        self.table_differences = Gauge(
            f"{namespace}_table_differences",
            "Differences found in the last comparison by kind",
            ["kind"],
            registry=self.registry
        )

        logger.debug(f"Initialized ComparisonMetrics with namespace: {namespace}")

    def observe_snapshot(self, side: str, duration_seconds: float) -> None:
        """Record how long capturing one side took."""
        self.snapshot_duration_seconds.labels(side=side).observe(duration_seconds)

    def record_comparison_run(self, report: ComparisonReport, duration_seconds: float) -> None:
        """
        Record a successful comparison run.

        Args:
            report: Comparison report
            duration_seconds: Total run duration
        """
        self.comparison_runs_total.labels(status="success").inc()
        self.comparison_duration_seconds.observe(duration_seconds)
        self.tables_compared.set(report.summary.total_tables)

        differences = count_differences(report)
        for kind, value in differences.items():
            self.table_differences.labels(kind=kind).set(value)

        logger.debug(f"Recorded comparison metrics: duration={duration_seconds:.2f}s, differences={differences}")

    def record_failure(self, duration_seconds: float) -> None:
        """Record a failed or cancelled comparison run."""
        self.comparison_runs_total.labels(status="failure").inc()
        self.comparison_duration_seconds.observe(duration_seconds)

    def push(self, gateway_url: str, job_name: str = "schemadiff", grouping_key: Optional[Dict] = None) -> None:
        """
        Push metrics to a Prometheus Pushgateway.

        Args:
            gateway_url: Pushgateway address
            job_name: Job name for the pushed metrics
            grouping_key: Optional grouping key labels
        """
        push_to_gateway(
            gateway_url,
            job=job_name,
            registry=self.registry,
            grouping_key=grouping_key or {}
        )
        logger.info(f"Pushed metrics to gateway: {gateway_url}")
