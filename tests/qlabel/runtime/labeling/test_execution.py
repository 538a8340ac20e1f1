from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from qlabel.runtime.labeling.execution import ExecutionBasis, is_price_level


@pytest.fixture
def bars(make_bars):
    return make_bars(
        [10.0, 11.0, 12.0],
        open=[9.5, 10.5, 11.5],
        high=[10.5, 11.5, 12.5],
        low=[9.0, 10.0, 11.0],
    )


@pytest.mark.parametrize(
    ("basis", "offset"),
    [
        (ExecutionBasis.CURRENT_OPEN, 0),
        (ExecutionBasis.CURRENT_CLOSE, 0),
        (ExecutionBasis.NEXT_OPEN, 1),
        (ExecutionBasis.NEXT_CLOSE, 1),
        (ExecutionBasis.IMMEDIATE, 0),
    ],
)
def test_index_offset(basis: ExecutionBasis, offset: int) -> None:
    assert basis.index_offset == offset


def test_temporal_priority_orders_fill_moments() -> None:
    ordered = sorted(ExecutionBasis, key=lambda basis: basis.temporal_priority)
    assert ordered == [
        ExecutionBasis.IMMEDIATE,
        ExecutionBasis.CURRENT_OPEN,
        ExecutionBasis.CURRENT_CLOSE,
        ExecutionBasis.NEXT_OPEN,
        ExecutionBasis.NEXT_CLOSE,
    ]


def test_open_and_close_bases_ignore_level(bars) -> None:
    assert ExecutionBasis.CURRENT_OPEN.price(123.0, 1, bars) == 10.5
    assert ExecutionBasis.NEXT_OPEN.price(123.0, 2, bars) == 11.5
    assert ExecutionBasis.CURRENT_CLOSE.price(123.0, 0, bars) == 10.0
    assert ExecutionBasis.NEXT_CLOSE.price(123.0, 2, bars) == 12.0


def test_immediate_fills_at_numeric_level(bars) -> None:
    assert ExecutionBasis.IMMEDIATE.price(10.75, 1, bars) == 10.75
    assert ExecutionBasis.IMMEDIATE.price(np.float64(10.25), 1, bars) == 10.25
    assert ExecutionBasis.IMMEDIATE.price(11, 1, bars) == 11.0


@pytest.mark.parametrize("level", [True, np.bool_(False), pd.Timestamp("2025-01-01"), None])
def test_immediate_falls_back_to_close_for_non_price_levels(bars, level) -> None:
    assert ExecutionBasis.IMMEDIATE.price(level, 2, bars) == 12.0


def test_is_price_level_excludes_booleans() -> None:
    assert is_price_level(1.5)
    assert is_price_level(np.int32(3))
    assert not is_price_level(True)
    assert not is_price_level("1.5")


@pytest.mark.parametrize(
    "raw",
    ["next_open", "NEXT_OPEN", " Next-Open ", ExecutionBasis.NEXT_OPEN],
)
def test_parse_accepts_values_and_names(raw) -> None:
    assert ExecutionBasis.parse(raw) is ExecutionBasis.NEXT_OPEN


def test_parse_rejects_unknown_basis() -> None:
    with pytest.raises(ValueError, match="execution basis must be one of"):
        ExecutionBasis.parse("tomorrow")
