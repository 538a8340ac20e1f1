"""Test configuration and shared fixtures."""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
import pandas as pd
import pytest

from qlabel.foundation import config as labeling_config
from qlabel.runtime.labeling import metrics as labeling_metrics
from qlabel.runtime.labeling.schema import PriceSeries

BarFactory = Callable[..., PriceSeries]


@pytest.fixture(autouse=True)
def _reset_labeling_state(monkeypatch: pytest.MonkeyPatch):
    for name in (
        labeling_config.CONFIG_FILE_ENV,
        "QLABEL_ENTRY_BASIS",
        "QLABEL_DROP_UNRESOLVED",
        "QLABEL_MAX_WORKERS",
        "QLABEL_WARN_ON_ORDERING",
    ):
        monkeypatch.delenv(name, raising=False)
    labeling_config.reset_labeling_config_cache()
    labeling_config.set_labeling_config_override(labeling_config.LabelingConfig())
    labeling_metrics.reset_metrics()
    yield
    labeling_config.set_labeling_config_override(None)
    labeling_config.reset_labeling_config_cache()
    labeling_metrics.reset_metrics()


@pytest.fixture
def make_bars() -> BarFactory:
    """Build a :class:`PriceSeries` from closes with optional OHLC overrides.

    Missing fields default to the close, volume to 1 and timestamps to one
    minute apart starting 2025-01-01 09:30.
    """

    def _make(
        close: Sequence[float],
        *,
        open: Sequence[float] | None = None,
        high: Sequence[float] | None = None,
        low: Sequence[float] | None = None,
        start: str = "2025-01-01 09:30",
        freq: str = "1min",
    ) -> PriceSeries:
        closes = np.asarray(close, dtype=np.float64)
        n_bars = len(closes)
        return PriceSeries(
            open=closes if open is None else open,
            high=closes if high is None else high,
            low=closes if low is None else low,
            close=closes,
            volume=np.ones(n_bars),
            timestamp=pd.date_range(start, periods=n_bars, freq=freq).to_numpy(),
        )

    return _make


@pytest.fixture
def jump_bars(make_bars: BarFactory) -> PriceSeries:
    """Ten bars flat at 100 whose seventh bar (index 6) trades up to 111."""
    close = [100.0] * 6 + [110.5, 110.0, 110.0, 110.0]
    high = [100.5] * 6 + [111.0, 110.5, 110.5, 110.5]
    low = [99.5] * 6 + [100.0, 109.5, 109.5, 109.5]
    return make_bars(close, open=[100.0] * 10, high=high, low=low)
