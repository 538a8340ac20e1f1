"""Shared labeling schema types: price bars and outcome codes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

ALLOWED_LABELS: frozenset[int] = frozenset({-1, 0, 1})
"""Outcome codes a barrier may emit (lower, neutral/time, upper)."""

UNRESOLVED_LABEL: int = -99
"""Reserved code for events that never hit a barrier; never a valid label."""

BAR_FIELDS: tuple[str, ...] = ("open", "high", "low", "close", "volume", "timestamp")


def validate_label(label: int) -> int:
    """Return ``label`` as ``int`` or raise when it is outside :data:`ALLOWED_LABELS`."""
    if isinstance(label, bool) or not isinstance(label, (int, np.integer)):
        raise ValueError(f"label must be an integer in {sorted(ALLOWED_LABELS)}, got {label!r}")
    value = int(label)
    if value not in ALLOWED_LABELS:
        raise ValueError(f"label must be one of {sorted(ALLOWED_LABELS)}, got {value}")
    return value


def _frozen_float_array(name: str, values: Sequence[float] | np.ndarray) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional")
    array.flags.writeable = False
    return array


def _frozen_timestamp_array(values: Sequence | np.ndarray) -> np.ndarray:
    array = np.array(values, dtype="datetime64[ns]")
    if array.ndim != 1:
        raise ValueError("timestamp must be one-dimensional")
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class PriceSeries:
    """Immutable OHLCV bars with a parallel timestamp array.

    Every array is copied into a read-only numpy array on construction, so the
    series can be shared by concurrent event scans without locking.
    """

    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray
    timestamp: np.ndarray

    def __post_init__(self) -> None:
        for name in BAR_FIELDS[:-1]:
            object.__setattr__(self, name, _frozen_float_array(name, getattr(self, name)))
        object.__setattr__(self, "timestamp", _frozen_timestamp_array(self.timestamp))
        lengths = {name: len(getattr(self, name)) for name in BAR_FIELDS}
        if len(set(lengths.values())) != 1:
            raise ValueError(f"price arrays must have equal length, got {lengths}")

    def __len__(self) -> int:
        return len(self.close)

    def length(self) -> int:
        return len(self)

    @classmethod
    def from_frame(cls, frame: "pd.DataFrame") -> "PriceSeries":
        """Build a series from a DataFrame with OHLCV columns.

        Timestamps come from a ``timestamp`` column when present, otherwise from
        a :class:`pandas.DatetimeIndex`.
        """
        import pandas as pd

        missing = [name for name in BAR_FIELDS[:-1] if name not in frame.columns]
        if missing:
            raise ValueError(f"frame is missing price columns: {missing}")
        if "timestamp" in frame.columns:
            timestamps = pd.to_datetime(frame["timestamp"]).to_numpy(dtype="datetime64[ns]")
        elif isinstance(frame.index, pd.DatetimeIndex):
            timestamps = frame.index.to_numpy(dtype="datetime64[ns]")
        else:
            raise ValueError("frame needs a 'timestamp' column or a DatetimeIndex")
        return cls(
            open=frame["open"].to_numpy(),
            high=frame["high"].to_numpy(),
            low=frame["low"].to_numpy(),
            close=frame["close"].to_numpy(),
            volume=frame["volume"].to_numpy(),
            timestamp=timestamps,
        )


__all__ = [
    "ALLOWED_LABELS",
    "BAR_FIELDS",
    "PriceSeries",
    "UNRESOLVED_LABEL",
    "validate_label",
]
