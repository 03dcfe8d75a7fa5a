"""Tests for :mod:`algo_trading_engine.utils.indicators`."""

import pytest

from algo_trading_engine.utils import bollinger_bands, moving_average, relative_strength_index, rolling_std


def test_moving_average_trailing_windows() -> None:
    assert moving_average([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx([1.5, 2.5, 3.5])


def test_moving_average_short_input_returns_empty() -> None:
    assert moving_average([1.0, 2.0], 3) == []


def test_moving_average_rejects_non_positive_window() -> None:
    with pytest.raises(ValueError):
        moving_average([1.0], 0)


def test_rolling_std_is_population_deviation() -> None:
    values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]

    assert rolling_std(values, 8) == pytest.approx([2.0])


def test_rsi_uses_wilder_smoothing() -> None:
    # first reading averages +1/-1, the next smooths in a +2 move
    values = [1.0, 2.0, 1.0, 3.0]

    result = relative_strength_index(values, 2)

    assert result == pytest.approx([50.0, 100.0 - 100.0 / 6.0])


def test_rsi_needs_period_plus_one_values() -> None:
    assert relative_strength_index([1.0, 2.0, 3.0], 3) == []


def test_rsi_without_losses_is_100() -> None:
    assert relative_strength_index([1.0, 2.0, 3.0, 4.0], 3) == pytest.approx([100.0])


def test_bollinger_bands_on_flat_series_collapse() -> None:
    band = bollinger_bands([5.0] * 4, 4, 2.0)[-1]

    assert band.middle == pytest.approx(5.0)
    assert band.upper == pytest.approx(5.0)
    assert band.lower == pytest.approx(5.0)


def test_bollinger_bands_width_scales_with_deviations() -> None:
    values = [10.0] * 9 + [0.0]

    band = bollinger_bands(values, 10, 2.0)[-1]

    assert band.middle == pytest.approx(9.0)
    assert band.upper == pytest.approx(15.0)
    assert band.lower == pytest.approx(3.0)
