"""Barrier resolution, sample weighting and label result contracts."""

from qlabel.runtime.labeling.barriers import (
    Barrier,
    BarrierProtocol,
    ConditionBarrier,
    LowerBarrier,
    TimeBarrier,
    UpperBarrier,
    return_barriers,
    volatility_scaled_barriers,
)
from qlabel.runtime.labeling.context import EvaluationContext, NEUTRAL_SIDE, SIDE_KEY
from qlabel.runtime.labeling.execution import ExecutionBasis
from qlabel.runtime.labeling.horizons import (
    estimate_half_life,
    half_life_barrier,
    holding_period_barrier,
    max_bars_barrier,
)
from qlabel.runtime.labeling.meta import meta_label_from_outcome, meta_labels
from qlabel.runtime.labeling.resolution import resolve, resolve_frame, warn_barrier_ordering
from qlabel.runtime.labeling.results import LabelResults
from qlabel.runtime.labeling.schema import ALLOWED_LABELS, UNRESOLVED_LABEL, PriceSeries
from qlabel.runtime.labeling.weights import (
    average_uniqueness,
    cumulative_inverse_concurrency,
    sample_weights,
)

__all__ = [
    "ALLOWED_LABELS",
    "Barrier",
    "BarrierProtocol",
    "ConditionBarrier",
    "EvaluationContext",
    "ExecutionBasis",
    "LabelResults",
    "LowerBarrier",
    "NEUTRAL_SIDE",
    "PriceSeries",
    "SIDE_KEY",
    "TimeBarrier",
    "UNRESOLVED_LABEL",
    "UpperBarrier",
    "average_uniqueness",
    "cumulative_inverse_concurrency",
    "estimate_half_life",
    "half_life_barrier",
    "holding_period_barrier",
    "max_bars_barrier",
    "meta_label_from_outcome",
    "meta_labels",
    "resolve",
    "resolve_frame",
    "return_barriers",
    "sample_weights",
    "volatility_scaled_barriers",
    "warn_barrier_ordering",
]
