"""Prometheus metrics for labeling runs."""

from __future__ import annotations

from qlabel.foundation.common.metrics_factory import (
    get_or_create_counter,
    get_or_create_gauge,
    get_or_create_histogram,
    reset_metrics as reset_registered_metrics,
)

_METRIC_NAMES = (
    "labeling_events_total",
    "labeling_ordering_warnings_total",
    "labeling_resolve_duration_seconds",
    "labeling_last_resolved_ratio",
)

labeling_events_total = get_or_create_counter(
    "labeling_events_total",
    "Events processed by the resolution loop grouped by outcome",
    ["outcome"],
)

labeling_ordering_warnings_total = get_or_create_counter(
    "labeling_ordering_warnings_total",
    "Barrier lists whose order contradicts exit-basis temporal priority",
)

labeling_resolve_duration_seconds = get_or_create_histogram(
    "labeling_resolve_duration_seconds",
    "Wall-clock duration of a resolve() call",
    buckets=(0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0),
)

labeling_last_resolved_ratio = get_or_create_gauge(
    "labeling_last_resolved_ratio",
    "Share of events resolved by the most recent resolve() call",
)


def observe_outcomes(resolved: int, unresolved: int) -> None:
    if resolved:
        labeling_events_total.labels(outcome="resolved").inc(resolved)
    if unresolved:
        labeling_events_total.labels(outcome="unresolved").inc(unresolved)
    total = resolved + unresolved
    labeling_last_resolved_ratio.set(resolved / total if total else 0.0)


def observe_ordering_warning() -> None:
    labeling_ordering_warnings_total.inc()


def observe_duration(seconds: float) -> None:
    labeling_resolve_duration_seconds.observe(seconds)


def reset_metrics() -> None:
    """Zero every labeling metric (used by tests)."""
    reset_registered_metrics(_METRIC_NAMES)


__all__ = [
    "labeling_events_total",
    "labeling_last_resolved_ratio",
    "labeling_ordering_warnings_total",
    "labeling_resolve_duration_seconds",
    "observe_duration",
    "observe_ordering_warning",
    "observe_outcomes",
    "reset_metrics",
]
