"""Idempotent Prometheus metric registration for labeling runs.

Labeling modules are imported by tests and notebooks many times per process,
so metrics are fetched from the registry when they already exist instead of
being registered twice. Every metric created here also gets a reset callback
so the suite can start each test from zero.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from functools import partial
from typing import Dict, Tuple, TypeVar

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    REGISTRY as global_registry,
)
from prometheus_client.metrics import MetricWrapperBase

__all__ = [
    "get_or_create_counter",
    "get_or_create_gauge",
    "get_or_create_histogram",
    "get_metric_value",
    "reset_metrics",
]

MetricT = TypeVar("MetricT", bound=MetricWrapperBase)
RegistryKey = Tuple[CollectorRegistry, str]

_METRIC_CACHE: Dict[RegistryKey, MetricWrapperBase] = {}
_RESET_CALLBACKS: Dict[RegistryKey, Callable[[], None]] = {}


def get_or_create_counter(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> Counter:
    """Return an existing counter or register a new one."""

    return _get_or_create_metric(Counter, name, documentation, labelnames, registry=registry)


def get_or_create_gauge(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> Gauge:
    """Return an existing gauge or register a new one."""

    return _get_or_create_metric(Gauge, name, documentation, labelnames, registry=registry)


def get_or_create_histogram(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
    buckets: Sequence[float] | None = None,
) -> Histogram:
    """Return an existing histogram or register a new one."""

    extra = {"buckets": tuple(buckets)} if buckets is not None else {}
    return _get_or_create_metric(
        Histogram, name, documentation, labelnames, registry=registry, **extra
    )


def reset_metrics(
    names: Iterable[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> None:
    """Reset registered metrics for ``registry``.

    When ``names`` is ``None`` every metric created through this module for the
    registry is reset.
    """

    reg = registry or global_registry
    if names is None:
        keys = [key for key in _RESET_CALLBACKS if key[0] is reg]
    else:
        requested = set(names)
        keys = [key for key in _RESET_CALLBACKS if key[0] is reg and key[1] in requested]
    for key in keys:
        _RESET_CALLBACKS[key]()


def get_metric_value(
    metric: MetricWrapperBase, labels: Mapping[str, str] | None = None
) -> float:
    """Return the current value of ``metric``.

    Counters report their ``_total`` sample and histograms their ``_count``
    sample. When ``labels`` are provided the matching labelled sample is
    returned, otherwise the first unlabelled one. Missing samples read as 0.
    """

    wanted = dict(labels) if labels is not None else None
    for family in metric.collect():
        for sample in family.samples:
            if sample.name.endswith(("_created", "_bucket", "_sum")):
                continue
            if wanted is None and sample.labels:
                continue
            if wanted is not None and sample.labels != wanted:
                continue
            return float(sample.value)
    return 0.0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_or_create_metric(
    metric_cls: type[MetricT],
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None,
    *,
    registry: CollectorRegistry | None,
    **kwargs,
) -> MetricT:
    reg = registry or global_registry
    labels = tuple(labelnames or ())
    key = (reg, name)

    metric = _METRIC_CACHE.get(key) or _lookup_metric(reg, name)
    if metric is not None and not isinstance(metric, metric_cls):
        if key not in _METRIC_CACHE:
            raise TypeError(
                f"Metric '{name}' already registered with incompatible type {type(metric)!r}"
            )
        reg.unregister(metric)
        metric = None
    elif metric is not None and _label_names(metric) != labels:
        # label schema changed (e.g. module reloaded with new labels)
        reg.unregister(metric)
        metric = None

    if metric is None:
        metric = metric_cls(name, documentation, labels, registry=reg, **kwargs)
    _METRIC_CACHE[key] = metric
    _RESET_CALLBACKS[key] = partial(_zero_metric, metric)
    return metric  # type: ignore[return-value]


def _zero_metric(metric: MetricWrapperBase) -> None:
    if _label_names(metric):
        metric.clear()
    elif isinstance(metric, (Counter, Gauge)):
        metric._value.set(0)  # type: ignore[attr-defined]
    elif isinstance(metric, Histogram):
        metric._sum.set(0)  # type: ignore[attr-defined]
        for bucket in metric._buckets:  # type: ignore[attr-defined]
            bucket.set(0)


def _lookup_metric(registry: CollectorRegistry, name: str) -> MetricWrapperBase | None:
    # prometheus_client keeps no public name lookup
    collectors = getattr(registry, "_names_to_collectors", {})
    return collectors.get(name)


def _label_names(metric: MetricWrapperBase) -> tuple[str, ...]:
    return tuple(getattr(metric, "_labelnames", ()))
