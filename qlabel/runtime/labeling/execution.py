"""Execution bases: which bar and which price field a fill uses."""

from __future__ import annotations

from enum import Enum
from numbers import Real
from typing import Any

import numpy as np

from qlabel.runtime.labeling.schema import PriceSeries


class ExecutionBasis(str, Enum):
    """Fill timing relative to the bar a decision is made on."""

    CURRENT_OPEN = "current_open"
    CURRENT_CLOSE = "current_close"
    NEXT_OPEN = "next_open"
    NEXT_CLOSE = "next_close"
    IMMEDIATE = "immediate"

    @classmethod
    def parse(cls, value: "ExecutionBasis | str") -> "ExecutionBasis":
        """Return the basis named by ``value`` (enum value or name, any case)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise ValueError(
            f"execution basis must be one of {', '.join(m.value for m in cls)}, got {value!r}"
        )

    @property
    def index_offset(self) -> int:
        """Bars between the decision bar and the fill bar (0 or 1)."""
        return 1 if self in (ExecutionBasis.NEXT_OPEN, ExecutionBasis.NEXT_CLOSE) else 0

    @property
    def temporal_priority(self) -> int:
        """Rank of the fill moment within a bar sequence; lower fills earlier."""
        return _TEMPORAL_PRIORITY[self]

    def price(self, level: Any, bar_index: int, bars: PriceSeries) -> float:
        """Return the fill price at ``bar_index``.

        Open/close bases read the bar field and ignore ``level``. ``IMMEDIATE``
        fills at ``level`` when it is a price; time and condition levels have no
        price, so the bar's close is used instead.
        """
        if self in (ExecutionBasis.CURRENT_OPEN, ExecutionBasis.NEXT_OPEN):
            return float(bars.open[bar_index])
        if self in (ExecutionBasis.CURRENT_CLOSE, ExecutionBasis.NEXT_CLOSE):
            return float(bars.close[bar_index])
        if is_price_level(level):
            return float(level)
        return float(bars.close[bar_index])


_TEMPORAL_PRIORITY = {
    ExecutionBasis.IMMEDIATE: 1,
    ExecutionBasis.CURRENT_OPEN: 2,
    ExecutionBasis.CURRENT_CLOSE: 3,
    ExecutionBasis.NEXT_OPEN: 4,
    ExecutionBasis.NEXT_CLOSE: 5,
}


def is_price_level(level: Any) -> bool:
    """True for real-valued levels; booleans and timestamps are not prices."""
    if isinstance(level, (bool, np.bool_)):
        return False
    return isinstance(level, (Real, np.integer, np.floating))


__all__ = ["ExecutionBasis", "is_price_level"]
