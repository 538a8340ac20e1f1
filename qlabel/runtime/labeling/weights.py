"""Concurrency-corrected, return-scaled sample weights.

Events whose holding periods overlap many others carry less independent
information, so each event is weighted by its average uniqueness (mean of
``1 / concurrency`` over the bars it is open) scaled by its absolute return.
Weights are normalised to sum to the number of events.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def _as_index_array(name: str, values: Sequence[int] | np.ndarray) -> np.ndarray:
    array = np.asarray(values, dtype=np.int64)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional")
    return array


def _validate_intervals(n_bars: int, entries: np.ndarray, exits: np.ndarray) -> None:
    if len(entries) != len(exits):
        raise ValueError("entry_indices and exit_indices must have equal length")
    if len(entries) == 0:
        return
    if entries.min() < 0 or exits.max() >= n_bars:
        raise ValueError(f"event intervals must lie within [0, {n_bars - 1}]")
    if np.any(exits < entries):
        raise ValueError("exit index must be >= entry index for every event")


def cumulative_inverse_concurrency(
    n_bars: int,
    entry_indices: Sequence[int] | np.ndarray,
    exit_indices: Sequence[int] | np.ndarray,
) -> np.ndarray:
    """Return the running sum of ``1 / concurrency`` over ``n_bars`` bars.

    The result has length ``n_bars + 1`` with a leading zero, so the sum over
    the inclusive bar range ``[a, b]`` is ``out[b + 1] - out[a]``. Bars with
    no open event contribute nothing.
    """
    entries = _as_index_array("entry_indices", entry_indices)
    exits = _as_index_array("exit_indices", exit_indices)
    _validate_intervals(n_bars, entries, exits)

    deltas = np.zeros(n_bars + 1, dtype=np.int64)
    np.add.at(deltas, entries, 1)
    np.add.at(deltas, exits + 1, -1)
    concurrency = np.cumsum(deltas[:n_bars])

    inverse = np.zeros(n_bars, dtype=np.float64)
    active = concurrency > 0
    inverse[active] = 1.0 / concurrency[active]

    out = np.zeros(n_bars + 1, dtype=np.float64)
    np.cumsum(inverse, out=out[1:])
    return out


def average_uniqueness(
    n_bars: int,
    entry_indices: Sequence[int] | np.ndarray,
    exit_indices: Sequence[int] | np.ndarray,
) -> np.ndarray:
    """Mean of ``1 / concurrency`` over each event's inclusive holding range."""
    entries = _as_index_array("entry_indices", entry_indices)
    exits = _as_index_array("exit_indices", exit_indices)
    cumulative = cumulative_inverse_concurrency(n_bars, entries, exits)
    if len(entries) == 0:
        return np.zeros(0, dtype=np.float64)
    duration = (exits - entries + 1).astype(np.float64)
    return (cumulative[exits + 1] - cumulative[entries]) / duration


def sample_weights(
    n_bars: int,
    entry_indices: Sequence[int] | np.ndarray,
    exit_indices: Sequence[int] | np.ndarray,
    returns: Sequence[float] | np.ndarray,
) -> np.ndarray:
    """Return normalised sample weights for resolved events.

    Raw weight is average uniqueness times ``|return|``. When the raw weights
    sum to a positive value they are rescaled to sum to the event count;
    otherwise (e.g. every return is exactly zero) each event gets weight 1.
    """
    rets = np.asarray(returns, dtype=np.float64)
    uniqueness = average_uniqueness(n_bars, entry_indices, exit_indices)
    if len(rets) != len(uniqueness):
        raise ValueError("returns must have one value per event")
    count = len(rets)
    if count == 0:
        return np.zeros(0, dtype=np.float64)

    raw = uniqueness * np.abs(rets)
    total = float(raw.sum())
    if total > 0.0 and np.isfinite(total):
        return raw * (count / total)
    return np.ones(count, dtype=np.float64)


__all__ = [
    "average_uniqueness",
    "cumulative_inverse_concurrency",
    "sample_weights",
]
