"""Read-only evaluation context handed to barrier level functions."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterator

import numpy as np
import pandas as pd

from qlabel.runtime.labeling.schema import BAR_FIELDS, PriceSeries

SIDE_KEY = "side"
"""Extra-context array holding the per-bar trade direction (1 long, -1 short)."""

NEUTRAL_SIDE = 0

_RESERVED_KEYS = ("idx", "entry_index", "entry_price", "entry_ts", "entry_side", "bars")


class EvaluationContext(Mapping):
    """Frozen entry state plus the bar currently being evaluated.

    Keys are ``idx``, ``entry_index``, ``entry_price``, ``entry_ts``,
    ``entry_side``, ``bars`` and every caller-supplied extra array. The same
    names are available as attributes. Unknown names raise ``KeyError`` (or
    ``AttributeError`` for attribute access) instead of defaulting.

    Entry values are fixed when the context is created by :meth:`at_entry`;
    :meth:`with_bar` only moves ``idx``.
    """

    __slots__ = ("_bars", "_extra", "idx", "entry_index", "entry_price", "entry_ts", "entry_side")

    def __init__(
        self,
        bars: PriceSeries,
        extra: Mapping[str, Any],
        *,
        idx: int,
        entry_index: int,
        entry_price: float,
        entry_ts: pd.Timestamp,
        entry_side: int = NEUTRAL_SIDE,
    ) -> None:
        object.__setattr__(self, "_bars", bars)
        object.__setattr__(self, "_extra", extra)
        object.__setattr__(self, "idx", idx)
        object.__setattr__(self, "entry_index", entry_index)
        object.__setattr__(self, "entry_price", entry_price)
        object.__setattr__(self, "entry_ts", entry_ts)
        object.__setattr__(self, "entry_side", entry_side)

    @classmethod
    def at_entry(
        cls,
        bars: PriceSeries,
        extra: Mapping[str, Any],
        *,
        event_index: int,
        entry_index: int,
        entry_price: float,
    ) -> "EvaluationContext":
        """Freeze entry price, timestamp and side for one event."""
        side = NEUTRAL_SIDE
        if SIDE_KEY in extra and 0 <= event_index < len(bars):
            side = _coerce_side(extra[SIDE_KEY][event_index])
        return cls(
            bars,
            extra,
            idx=entry_index,
            entry_index=entry_index,
            entry_price=entry_price,
            entry_ts=pd.Timestamp(bars.timestamp[entry_index]),
            entry_side=side,
        )

    def with_bar(self, idx: int) -> "EvaluationContext":
        return EvaluationContext(
            self._bars,
            self._extra,
            idx=idx,
            entry_index=self.entry_index,
            entry_price=self.entry_price,
            entry_ts=self.entry_ts,
            entry_side=self.entry_side,
        )

    @property
    def bars(self) -> PriceSeries:
        return self._bars

    def at(self, name: str) -> Any:
        """Return ``name`` at the current bar (bar fields or extra arrays)."""
        if name in BAR_FIELDS:
            value = getattr(self._bars, name)[self.idx]
            if name == "timestamp":
                return pd.Timestamp(value)
            return float(value)
        return self[name][self.idx]

    def __getitem__(self, key: str) -> Any:
        if key == "bars":
            return self._bars
        if key in _RESERVED_KEYS:
            return getattr(self, key)
        return self._extra[key]

    def __getattr__(self, name: str) -> Any:
        extra = object.__getattribute__(self, "_extra")
        try:
            return extra[name]
        except KeyError:
            raise AttributeError(
                f"evaluation context has no field {name!r}"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("EvaluationContext is read-only")

    def __iter__(self) -> Iterator[str]:
        yield from _RESERVED_KEYS
        for key in self._extra:
            if key not in _RESERVED_KEYS:
                yield key

    def __len__(self) -> int:
        return len(_RESERVED_KEYS) + sum(1 for key in self._extra if key not in _RESERVED_KEYS)

    def __repr__(self) -> str:
        return (
            f"EvaluationContext(idx={self.idx}, entry_index={self.entry_index}, "
            f"entry_price={self.entry_price!r}, entry_side={self.entry_side}, "
            f"extra={sorted(self._extra)})"
        )


def _coerce_side(value: Any) -> int:
    # NaN warm-up rows in a float side column read as neutral
    numeric = float(value)
    if not np.isfinite(numeric):
        return NEUTRAL_SIDE
    return int(np.sign(numeric))


def freeze_extra_context(
    extra: Mapping[str, Any] | None, n_bars: int
) -> Mapping[str, Any]:
    """Validate caller arrays and return a read-only view of them.

    Sequence-like values must match the bar count so they can be indexed by
    bar position. Scalars and callables are passed through untouched.
    """
    if not extra:
        return MappingProxyType({})
    frozen: dict[str, Any] = {}
    for key, value in extra.items():
        if key in _RESERVED_KEYS:
            raise ValueError(f"extra context key {key!r} is reserved")
        if isinstance(value, (pd.Series, pd.Index)):
            value = value.to_numpy()
        elif isinstance(value, (list, tuple)):
            value = np.asarray(value)
        if isinstance(value, np.ndarray):
            if value.ndim != 1 or len(value) != n_bars:
                raise ValueError(
                    f"extra context array {key!r} must have length {n_bars}, got shape {value.shape}"
                )
            value = value.view()
            value.flags.writeable = False
        frozen[key] = value
    return MappingProxyType(frozen)


__all__ = [
    "EvaluationContext",
    "NEUTRAL_SIDE",
    "SIDE_KEY",
    "freeze_extra_context",
]
