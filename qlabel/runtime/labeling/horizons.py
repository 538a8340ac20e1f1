"""Vertical (time) barrier builders.

Every horizon is resolved from entry-time state only: the level functions
read ``entry_ts``/``entry_index`` and values at or before the entry bar, so the
holding limit cannot leak information from the bars being scanned.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Sequence

import numpy as np
import pandas as pd

from qlabel.runtime.labeling.barriers import TimeBarrier
from qlabel.runtime.labeling.context import EvaluationContext
from qlabel.runtime.labeling.execution import ExecutionBasis


def _timestamp_after(ctx: EvaluationContext, n_bars: int) -> pd.Timestamp:
    target = ctx.entry_index + n_bars
    if target >= len(ctx.bars):
        return pd.NaT
    return pd.Timestamp(ctx.bars.timestamp[target])


def holding_period_barrier(
    max_duration: timedelta | pd.Timedelta | str,
    *,
    label: int = 0,
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE,
) -> TimeBarrier:
    """Close the trade on the first bar at or after ``entry_ts + max_duration``."""
    duration = pd.Timedelta(max_duration)
    if duration <= pd.Timedelta(0):
        raise ValueError("max_duration must be > 0")
    return TimeBarrier(lambda ctx: ctx.entry_ts + duration, label=label, exit_basis=exit_basis)


def max_bars_barrier(
    max_bars: int,
    *,
    label: int = 0,
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE,
) -> TimeBarrier:
    """Close the trade ``max_bars`` bars after entry.

    When the series ends first the barrier never fires and the event stays
    unresolved unless another barrier triggers.
    """
    if max_bars <= 0:
        raise ValueError("max_bars must be > 0")
    return TimeBarrier(lambda ctx: _timestamp_after(ctx, max_bars), label=label, exit_basis=exit_basis)


def estimate_half_life(values: Sequence[float] | np.ndarray) -> float:
    """Estimate the half-life (in bars) of a mean-reverting series.

    Fits ``delta[t] = beta * x[t-1]`` by least squares on demeaned data and
    returns ``-ln 2 / ln(1 + beta)``.
    """
    series = np.asarray(values, dtype=np.float64)
    series = series[np.isfinite(series)]
    if len(series) < 3:
        raise ValueError("values must include at least 3 finite points")
    lagged = series[:-1]
    delta = np.diff(series)
    lagged_centered = lagged - lagged.mean()
    variance = float(np.dot(lagged_centered, lagged_centered))
    if variance <= 0:
        raise ValueError("values must have non-zero variance")
    beta = float(np.dot(lagged_centered, delta - delta.mean())) / variance
    if beta >= 0 or (1 + beta) <= 0:
        raise ValueError("values do not imply mean reversion")
    return -math.log(2) / math.log(1 + beta)


def half_life_barrier(
    values_key: str,
    *,
    lookback: int = 100,
    multiplier: float = 1.0,
    min_bars: int = 1,
    max_bars: int | None = None,
    fallback_bars: int | None = None,
    label: int = 0,
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE,
) -> TimeBarrier:
    """Hold for a multiple of the half-life estimated from past values.

    The half-life is estimated on the ``lookback`` values of the extra-context
    array ``values_key`` ending at the entry bar. If the window does not
    support an estimate, ``fallback_bars`` is used when given; otherwise the
    estimation error propagates.
    """
    if lookback < 3:
        raise ValueError("lookback must be >= 3")
    if multiplier <= 0:
        raise ValueError("multiplier must be > 0")
    if min_bars <= 0:
        raise ValueError("min_bars must be > 0")
    if max_bars is not None and max_bars < min_bars:
        raise ValueError("max_bars must be >= min_bars")
    if fallback_bars is not None and fallback_bars <= 0:
        raise ValueError("fallback_bars must be > 0 when provided")

    def _level(ctx: EvaluationContext) -> pd.Timestamp:
        start = max(0, ctx.entry_index - lookback + 1)
        window = ctx[values_key][start : ctx.entry_index + 1]
        try:
            half_life = estimate_half_life(window)
        except ValueError:
            if fallback_bars is None:
                raise
            n_bars = fallback_bars
        else:
            n_bars = max(min_bars, math.ceil(half_life * multiplier))
            if max_bars is not None:
                n_bars = min(n_bars, max_bars)
        return _timestamp_after(ctx, n_bars)

    return TimeBarrier(_level, label=label, exit_basis=exit_basis)


__all__ = [
    "estimate_half_life",
    "half_life_barrier",
    "holding_period_barrier",
    "max_bars_barrier",
]
