from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from qlabel.runtime.labeling.schema import (
    ALLOWED_LABELS,
    UNRESOLVED_LABEL,
    PriceSeries,
    validate_label,
)


def test_sentinel_is_not_a_valid_label() -> None:
    assert UNRESOLVED_LABEL not in ALLOWED_LABELS
    with pytest.raises(ValueError):
        validate_label(UNRESOLVED_LABEL)


def test_validate_label_accepts_numpy_integers() -> None:
    assert validate_label(np.int8(-1)) == -1


def test_price_series_copies_into_read_only_arrays() -> None:
    close = [1.0, 2.0, 3.0]
    bars = PriceSeries(
        open=close,
        high=close,
        low=close,
        close=close,
        volume=[10, 20, 30],
        timestamp=pd.date_range("2025-01-01", periods=3, freq="D"),
    )

    assert len(bars) == bars.length() == 3
    assert bars.volume.dtype == np.float64
    assert bars.timestamp.dtype == np.dtype("datetime64[ns]")
    with pytest.raises(ValueError):
        bars.close[0] = 5.0


def test_price_series_rejects_unequal_lengths() -> None:
    with pytest.raises(ValueError, match="equal length"):
        PriceSeries(
            open=[1.0, 2.0],
            high=[1.0, 2.0],
            low=[1.0, 2.0],
            close=[1.0],
            volume=[1.0, 1.0],
            timestamp=pd.date_range("2025-01-01", periods=2, freq="D"),
        )


def test_from_frame_with_timestamp_column() -> None:
    frame = pd.DataFrame(
        {
            "timestamp": ["2025-01-01 09:30", "2025-01-01 09:31"],
            "open": [1.0, 2.0],
            "high": [1.5, 2.5],
            "low": [0.5, 1.5],
            "close": [1.2, 2.2],
            "volume": [100, 200],
        }
    )

    bars = PriceSeries.from_frame(frame)

    assert bars.high.tolist() == [1.5, 2.5]
    assert bars.timestamp[1] == np.datetime64("2025-01-01T09:31")


def test_from_frame_requires_price_columns_and_timestamps() -> None:
    with pytest.raises(ValueError, match="missing price columns"):
        PriceSeries.from_frame(pd.DataFrame({"close": [1.0]}))
    frame = pd.DataFrame({name: [1.0] for name in ("open", "high", "low", "close", "volume")})
    with pytest.raises(ValueError, match="DatetimeIndex"):
        PriceSeries.from_frame(frame)
