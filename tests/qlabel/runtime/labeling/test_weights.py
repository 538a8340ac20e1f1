from __future__ import annotations

import numpy as np
import pytest

from qlabel.runtime.labeling.weights import (
    average_uniqueness,
    cumulative_inverse_concurrency,
    sample_weights,
)


def test_cumulative_inverse_concurrency_overlapping_events() -> None:
    # bar:        0    1    2    3    4
    # concurrency 1    2    2    1    0
    out = cumulative_inverse_concurrency(5, [0, 1], [2, 3])

    assert out.shape == (6,)
    assert out == pytest.approx([0.0, 1.0, 1.5, 2.0, 3.0, 3.0])


def test_average_uniqueness_of_disjoint_events_is_one() -> None:
    uniqueness = average_uniqueness(6, [0, 3], [1, 5])
    assert uniqueness == pytest.approx([1.0, 1.0])


def test_average_uniqueness_of_overlapping_events() -> None:
    uniqueness = average_uniqueness(5, [0, 1], [2, 3])
    assert uniqueness == pytest.approx([2.0 / 3.0, 2.0 / 3.0])


def test_sample_weights_sum_to_event_count() -> None:
    weights = sample_weights(10, [1, 2, 6], [4, 7, 8], [0.05, -0.02, 0.01])

    assert weights.sum() == pytest.approx(3.0)
    assert (weights >= 0).all()
    assert weights[0] > weights[1] > weights[2]


def test_sample_weights_scale_with_absolute_return() -> None:
    weights = sample_weights(10, [0, 5], [1, 6], [0.01, -0.03])
    assert weights == pytest.approx([0.5, 1.5])


def test_sample_weights_all_zero_returns_are_uniform() -> None:
    weights = sample_weights(10, [0, 1, 2], [3, 4, 5], [0.0, 0.0, 0.0])

    assert weights == pytest.approx([1.0, 1.0, 1.0])
    assert np.isfinite(weights).all()


def test_sample_weights_empty_input() -> None:
    assert sample_weights(10, [], [], []).shape == (0,)


def test_sample_weights_validate_intervals() -> None:
    with pytest.raises(ValueError, match="equal length"):
        sample_weights(10, [0, 1], [2], [0.1, 0.1])
    with pytest.raises(ValueError, match="within"):
        sample_weights(10, [0], [10], [0.1])
    with pytest.raises(ValueError, match="exit index must be >= entry index"):
        sample_weights(10, [4], [3], [0.1])
    with pytest.raises(ValueError, match="one value per event"):
        sample_weights(10, [0, 1], [2, 3], [0.1])
