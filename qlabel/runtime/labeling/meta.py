"""Utilities for meta-labeling with resolved barrier outcomes."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from qlabel.runtime.labeling.results import LabelResults
from qlabel.runtime.labeling.schema import UNRESOLVED_LABEL

_SIDE_ALIASES = {
    "long": 1,
    "short": -1,
    "buy": 1,
    "sell": -1,
}


def _normalize_side(side: str | int) -> int:
    if isinstance(side, str):
        if not side:
            raise ValueError("side is required")
        normalized = _SIDE_ALIASES.get(side.lower())
        if normalized is None:
            raise ValueError(f"side must be one of {sorted(_SIDE_ALIASES)} or +/-1")
        return normalized
    if side not in (1, -1):
        raise ValueError(f"side must be one of {sorted(_SIDE_ALIASES)} or +/-1")
    return int(side)


def _normalize_entry_decision(entry_decision: int | None) -> int | None:
    if entry_decision is None:
        return None
    if entry_decision not in (0, 1):
        raise ValueError("entry_decision must be 0 or 1 when provided")
    return entry_decision


def meta_label_from_outcome(
    *,
    side: str | int,
    label: int,
    entry_decision: int | None = None,
) -> int:
    """Return 1 when the barrier hit was the profitable one for ``side``.

    A long profits on the upper outcome (+1), a short on the lower one (-1);
    time and condition exits (0) are not counted as wins. An ``entry_decision``
    of 0 (the primary model passed on the trade) always yields 0.
    """
    normalized_side = _normalize_side(side)
    if _normalize_entry_decision(entry_decision) == 0:
        return 0
    if label == UNRESOLVED_LABEL:
        raise ValueError("cannot meta-label an unresolved event")
    return 1 if label * normalized_side > 0 else 0


def meta_labels(
    results: LabelResults,
    side: Sequence[int] | np.ndarray,
    *,
    entry_decision: Sequence[int] | np.ndarray | None = None,
) -> np.ndarray:
    """Vectorised :func:`meta_label_from_outcome` over a result set.

    ``side`` (and ``entry_decision`` when given) are per-bar arrays indexed by
    each row's event bar. Rows with a neutral or non-finite side score 0;
    unresolved rows keep :data:`UNRESOLVED_LABEL`.
    """
    side_values = np.asarray(side, dtype=np.float64)
    side_values = np.where(np.isfinite(side_values), side_values, 0.0)
    in_range = (results.event_index >= 0) & (results.event_index < len(side_values))
    positions = np.where(in_range, results.event_index, 0)
    sides = np.where(in_range, np.sign(side_values[positions]), 0).astype(np.int64)
    out = np.where(results.label.astype(np.int64) * sides > 0, 1, 0).astype(np.int8)
    if entry_decision is not None:
        decisions = np.asarray(entry_decision, dtype=np.int64)[positions]
        if not np.isin(decisions[in_range], (0, 1)).all():
            raise ValueError("entry_decision must be 0 or 1")
        out[decisions == 0] = 0
    out[~results.resolved_mask] = UNRESOLVED_LABEL
    return out


__all__ = [
    "meta_label_from_outcome",
    "meta_labels",
]
