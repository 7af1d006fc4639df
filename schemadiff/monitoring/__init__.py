"""
Monitoring Module for Schema Comparison

Prometheus metrics for comparison runs.

Usage:
    from schemadiff.monitoring import ComparisonMetrics

    metrics = ComparisonMetrics()
    report = compare(config_old, config_new, metrics=metrics)
    metrics.push("localhost:9091")
"""

from schemadiff.monitoring.metrics import ComparisonMetrics, count_differences

__all__ = [
    "ComparisonMetrics",
    "count_differences",
]
