"""Immutable container for resolved label rows."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

import numpy as np

from qlabel.runtime.labeling.schema import UNRESOLVED_LABEL

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

UNRESOLVED_INDEX = -1


@dataclass(frozen=True, eq=False)
class LabelResults:
    """Parallel per-event arrays in the caller's event order.

    Unresolved rows (kept only when ``drop_unresolved`` is off) carry
    :data:`UNRESOLVED_LABEL`, an exit index of ``-1``, ``NaT`` exit timestamp,
    ``NaN`` returns and zero weight. Their entry fields are also blank when
    the entry bar itself fell outside the series.
    """

    event_index: np.ndarray
    entry_index: np.ndarray
    exit_index: np.ndarray
    entry_timestamp: np.ndarray
    exit_timestamp: np.ndarray
    label: np.ndarray
    ret: np.ndarray
    log_ret: np.ndarray
    weight: np.ndarray

    def __post_init__(self) -> None:
        lengths = {f.name: len(getattr(self, f.name)) for f in fields(self)}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"result arrays must have equal length, got {lengths}")
        for f in fields(self):
            getattr(self, f.name).flags.writeable = False

    @classmethod
    def build(
        cls,
        *,
        event_index: np.ndarray,
        entry_index: np.ndarray,
        exit_index: np.ndarray,
        entry_timestamp: np.ndarray,
        exit_timestamp: np.ndarray,
        label: np.ndarray,
        ret: np.ndarray,
        log_ret: np.ndarray,
        weight: np.ndarray,
        drop_unresolved: bool = True,
    ) -> "LabelResults":
        """Create results, compacting away unresolved rows when requested.

        Compaction is stable: surviving rows keep their relative order.
        """
        columns = {
            "event_index": event_index,
            "entry_index": entry_index,
            "exit_index": exit_index,
            "entry_timestamp": entry_timestamp,
            "exit_timestamp": exit_timestamp,
            "label": label,
            "ret": ret,
            "log_ret": log_ret,
            "weight": weight,
        }
        if drop_unresolved:
            keep = np.asarray(label) != UNRESOLVED_LABEL
            columns = {name: np.asarray(values)[keep] for name, values in columns.items()}
        else:
            columns = {name: np.array(values, copy=True) for name, values in columns.items()}
        return cls(**columns)

    def __len__(self) -> int:
        return len(self.label)

    @property
    def resolved_mask(self) -> np.ndarray:
        return self.label != UNRESOLVED_LABEL

    @property
    def n_resolved(self) -> int:
        return int(self.resolved_mask.sum())

    def to_frame(self) -> "pd.DataFrame":
        """Return the rows as a DataFrame, one column per array."""
        import pandas as pd

        return pd.DataFrame({f.name: getattr(self, f.name) for f in fields(self)})


__all__ = ["LabelResults", "UNRESOLVED_INDEX"]
