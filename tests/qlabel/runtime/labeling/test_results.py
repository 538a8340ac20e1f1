from __future__ import annotations

import numpy as np
import pytest

from qlabel.runtime.labeling.results import UNRESOLVED_INDEX, LabelResults
from qlabel.runtime.labeling.schema import UNRESOLVED_LABEL


def _columns() -> dict[str, np.ndarray]:
    return {
        "event_index": np.array([0, 3, 5, 8]),
        "entry_index": np.array([1, 4, 6, 9]),
        "exit_index": np.array([2, UNRESOLVED_INDEX, 8, UNRESOLVED_INDEX]),
        "entry_timestamp": np.array(
            ["2025-01-01T09:31", "2025-01-01T09:34", "2025-01-01T09:36", "2025-01-01T09:39"],
            dtype="datetime64[ns]",
        ),
        "exit_timestamp": np.array(
            ["2025-01-01T09:32", "NaT", "2025-01-01T09:38", "NaT"], dtype="datetime64[ns]"
        ),
        "label": np.array([1, UNRESOLVED_LABEL, -1, UNRESOLVED_LABEL], dtype=np.int8),
        "ret": np.array([0.02, np.nan, -0.01, np.nan]),
        "log_ret": np.log1p(np.array([0.02, np.nan, -0.01, np.nan])),
        "weight": np.array([1.5, 0.0, 0.5, 0.0]),
    }


def test_build_drops_unresolved_rows_in_order() -> None:
    results = LabelResults.build(**_columns())

    assert len(results) == 2
    assert results.event_index.tolist() == [0, 5]
    assert results.label.tolist() == [1, -1]
    assert results.exit_index.tolist() == [2, 8]
    assert results.n_resolved == 2


def test_build_keeps_unresolved_rows_with_sentinel() -> None:
    results = LabelResults.build(**_columns(), drop_unresolved=False)

    assert len(results) == 4
    assert results.resolved_mask.tolist() == [True, False, True, False]
    assert set(results.label[~results.resolved_mask].tolist()) == {UNRESOLVED_LABEL}
    assert np.isnat(results.exit_timestamp[1])
    assert np.isnan(results.ret[3])


def test_result_arrays_are_read_only() -> None:
    results = LabelResults.build(**_columns())

    with pytest.raises(ValueError):
        results.label[0] = 0
    with pytest.raises(AttributeError):
        results.label = np.zeros(2)  # type: ignore[misc]


def test_build_does_not_alias_inputs() -> None:
    columns = _columns()
    LabelResults.build(**columns, drop_unresolved=False)

    columns["label"][0] = 0
    assert columns["label"].flags.writeable


def test_unequal_lengths_are_rejected() -> None:
    columns = _columns()
    columns["weight"] = np.zeros(3)

    with pytest.raises(ValueError, match="equal length"):
        LabelResults(**columns)


def test_to_frame_has_one_column_per_array() -> None:
    frame = LabelResults.build(**_columns()).to_frame()

    assert list(frame.columns) == [
        "event_index",
        "entry_index",
        "exit_index",
        "entry_timestamp",
        "exit_timestamp",
        "label",
        "ret",
        "log_ret",
        "weight",
    ]
    assert frame["label"].tolist() == [1, -1]
