from datetime import date

import pytest

from helpers import flat_curve, make_trajectory

from trajectory_forecast.forecast import forecast_calculation, forecast_month


def test_forecast_compounds_from_latest_point():
    trajectory = make_trajectory('2025-09', [(20, 800.0), (10, 1000.0)])
    result = forecast_month('2025-09', trajectory, flat_curve(0.01))

    assert result.is_recommended
    assert result.days_to_close == 10
    assert result.current_weighted_value == 1000.0
    assert result.forecast == pytest.approx(1000.0 * 1.01 ** 10)
    assert result.total_projected_growth == pytest.approx(1.01 ** 10 - 1)
    assert [p.days_before_close for p in result.forecast_trajectory] == list(range(9, -1, -1))


def test_forecast_at_day_zero_is_latest_value():
    trajectory = make_trajectory('2025-09', [(3, 900.0), (0, 1000.0)])
    result = forecast_month('2025-09', trajectory, flat_curve(0.05))
    assert result.forecast == 1000.0
    assert result.total_projected_growth == 0.0
    assert result.forecast_trajectory == ()


def test_month_beyond_horizon_is_not_recommended():
    trajectory = make_trajectory('2025-12', [(95, 500.0)])
    result = forecast_month('2025-12', trajectory, flat_curve(0.01))
    assert not result.is_recommended
    assert result.days_to_close == 95
    assert result.current_weighted_value == 500.0


def test_empty_trajectory_is_not_recommended():
    result = forecast_month('2025-10', (), flat_curve(0.01))
    assert result.forecast is None
    assert result.current_weighted_value == 0.0


def test_zero_pipeline_forecasts_zero_growth():
    trajectory = make_trajectory('2025-09', [(10, 0.0)])
    result = forecast_month('2025-09', trajectory, flat_curve(0.01))
    assert result.forecast == 0.0
    assert result.total_projected_growth == 0.0


def test_breakdown_walks_forward_one_day_at_a_time():
    trajectory = make_trajectory('2025-09', [(3, 1000.0)])
    curve = flat_curve(0.02)
    calc = forecast_calculation(forecast_month('2025-09', trajectory, curve), curve)

    assert calc.start_value == 1000.0
    assert calc.end_value == pytest.approx(1000.0 * 1.02 ** 3)
    rows = calc.daily_breakdown
    assert [r.days_before for r in rows] == [2, 1, 0]
    assert [r.date for r in rows] == ['2025-09-28', '2025-09-29', '2025-09-30']
    assert rows[0].start_value == 1000.0
    assert rows[1].start_value == rows[0].end_value
    assert rows[-1].end_value == pytest.approx(calc.end_value)


def test_no_breakdown_without_forecast():
    result = forecast_month('2025-12', make_trajectory('2025-12', [(95, 500.0)]), flat_curve(0.01))
    assert forecast_calculation(result, flat_curve(0.01)) is None
