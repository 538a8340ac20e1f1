"""Barrier variants and the evaluation protocol shared by the resolution loop.

Each barrier pairs a level function (context -> level) with an outcome label
and the execution basis used for its exit fill. The resolution loop asks every
barrier, in listed order, first whether the bar *gapped* through the level at
the open and then whether the level was touched *intrabar*.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

import pandas as pd

from qlabel.runtime.labeling.context import EvaluationContext
from qlabel.runtime.labeling.execution import ExecutionBasis
from qlabel.runtime.labeling.schema import validate_label

LevelFunction = Callable[[EvaluationContext], Any]


@runtime_checkable
class BarrierProtocol(Protocol):
    """Interface the resolution loop relies on."""

    label: int
    exit_basis: ExecutionBasis

    def level(self, context: EvaluationContext) -> Any:
        """Evaluate the barrier level for the current bar."""

    def gap_triggered(self, level: Any, open_price: float) -> bool:
        """True when the bar opened at or beyond ``level``."""

    def intrabar_triggered(self, level: Any, low: float, high: float, timestamp: Any) -> bool:
        """True when the level was reached during the bar."""


@dataclass(frozen=True)
class _Barrier:
    level_function: LevelFunction
    label: int = 0
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE

    def __post_init__(self) -> None:
        if not callable(self.level_function):
            raise ValueError(f"{type(self).__name__} level_function must be callable")
        object.__setattr__(self, "label", validate_label(self.label))
        object.__setattr__(self, "exit_basis", ExecutionBasis.parse(self.exit_basis))

    @property
    def kind(self) -> str:
        return type(self).__name__

    def level(self, context: EvaluationContext) -> Any:
        return self.level_function(context)

    def gap_triggered(self, level: Any, open_price: float) -> bool:
        return False


@dataclass(frozen=True)
class LowerBarrier(_Barrier):
    """Price floor; fires when the low reaches the level (stop-loss for longs)."""

    label: int = -1

    def gap_triggered(self, level: Any, open_price: float) -> bool:
        return open_price <= level

    def intrabar_triggered(self, level: Any, low: float, high: float, timestamp: Any) -> bool:
        return low <= level


@dataclass(frozen=True)
class UpperBarrier(_Barrier):
    """Price ceiling; fires when the high reaches the level (profit-take for longs)."""

    label: int = 1

    def gap_triggered(self, level: Any, open_price: float) -> bool:
        return open_price >= level

    def intrabar_triggered(self, level: Any, low: float, high: float, timestamp: Any) -> bool:
        return high >= level


@dataclass(frozen=True)
class TimeBarrier(_Barrier):
    """Vertical barrier; fires on the first bar stamped at or after the level."""

    label: int = 0

    def intrabar_triggered(self, level: Any, low: float, high: float, timestamp: Any) -> bool:
        return pd.Timestamp(timestamp) >= pd.Timestamp(level)


@dataclass(frozen=True)
class ConditionBarrier(_Barrier):
    """Arbitrary predicate; the level function itself returns the trigger flag."""

    label: int = 0
    exit_basis: ExecutionBasis = ExecutionBasis.NEXT_OPEN

    def intrabar_triggered(self, level: Any, low: float, high: float, timestamp: Any) -> bool:
        return bool(level)


Barrier = LowerBarrier | UpperBarrier | TimeBarrier | ConditionBarrier


def _validate_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")


def _side_factor(context: EvaluationContext) -> int:
    return -1 if context.entry_side < 0 else 1


def return_barriers(
    profit: float | None,
    stop: float | None,
    *,
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE,
) -> tuple[_Barrier, ...]:
    """Return fixed-fraction price barriers around the entry price.

    ``profit`` and ``stop`` are return fractions (``0.02`` is 2%). Longs and
    neutral entries take profit above the entry price and stop below it;
    shorts are mirrored. The lower barrier is listed first, so a bar that
    touches both levels records the lower outcome.
    """
    if profit is not None:
        _validate_non_negative("profit", profit)
    if stop is not None:
        _validate_non_negative("stop", stop)
    return _side_aware_pair(
        (lambda ctx: profit) if profit is not None else None,
        (lambda ctx: stop) if stop is not None else None,
        exit_basis,
    )


def volatility_scaled_barriers(
    sigma_key: str,
    *,
    profit_multiplier: float | None,
    stop_multiplier: float | None,
    exit_basis: ExecutionBasis = ExecutionBasis.IMMEDIATE,
) -> tuple[_Barrier, ...]:
    """Return price barriers scaled by a return volatility frozen at entry.

    ``sigma_key`` names an extra-context array of return volatilities; the
    value at the entry bar times the multiplier is the barrier distance as a
    fraction of the entry price. A multiplier of ``None`` omits that barrier.
    """
    if profit_multiplier is not None:
        _validate_non_negative("profit_multiplier", profit_multiplier)
    if stop_multiplier is not None:
        _validate_non_negative("stop_multiplier", stop_multiplier)

    def _scaled(multiplier: float | None) -> Callable[[EvaluationContext], float] | None:
        if multiplier is None:
            return None
        return lambda ctx: multiplier * float(ctx[sigma_key][ctx.entry_index])

    return _side_aware_pair(_scaled(profit_multiplier), _scaled(stop_multiplier), exit_basis)


def _side_aware_pair(
    profit_distance: Callable[[EvaluationContext], float] | None,
    stop_distance: Callable[[EvaluationContext], float] | None,
    exit_basis: ExecutionBasis,
) -> tuple[_Barrier, ...]:
    def _upper(ctx: EvaluationContext) -> float:
        distance = profit_distance if _side_factor(ctx) > 0 else stop_distance
        if distance is None:
            return float("inf")
        return ctx.entry_price * (1.0 + distance(ctx))

    def _lower(ctx: EvaluationContext) -> float:
        distance = stop_distance if _side_factor(ctx) > 0 else profit_distance
        if distance is None:
            return float("-inf")
        return ctx.entry_price * (1.0 - distance(ctx))

    barriers: list[_Barrier] = []
    if profit_distance is not None or stop_distance is not None:
        barriers.append(LowerBarrier(_lower, exit_basis=exit_basis))
        barriers.append(UpperBarrier(_upper, exit_basis=exit_basis))
    return tuple(barriers)


__all__ = [
    "Barrier",
    "BarrierProtocol",
    "ConditionBarrier",
    "LevelFunction",
    "LowerBarrier",
    "TimeBarrier",
    "UpperBarrier",
    "return_barriers",
    "volatility_scaled_barriers",
]
