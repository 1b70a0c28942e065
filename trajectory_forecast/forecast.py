import logging

from trajectory_forecast import config
from trajectory_forecast.dates import ONE_DAY, day_string
from trajectory_forecast.models import DailyBreakdownRow, DailySnapshot, ForecastCalculation, ForecastResult

logger = logging.getLogger(__name__)


def latest_point(trajectory):
    return max(trajectory, key=lambda p: p.snapshot_date)


def project_forward(start_value, start_date, days_to_close, curve, lift=0.0):
    """
    Walk from ``days_to_close - 1`` down to day zero, compounding once per day.

    Returns (final_value, projected_points, daily_breakdown). ``lift`` is
    added to every day's rate (used by goal seek).
    """
    value = start_value
    current_date = start_date
    points = []
    breakdown = []

    for day in range(days_to_close - 1, -1, -1):
        rate = curve.rate(day) + lift
        start = value
        value = start * (1 + rate)
        current_date = current_date + ONE_DAY
        points.append(DailySnapshot(
            snapshot_date=current_date,
            days_before_close=day,
            raw_pipeline=0.0,
            weighted_pipeline=value,
        ))
        breakdown.append(DailyBreakdownRow(
            date=day_string(current_date),
            days_before=day,
            start_value=start,
            growth_rate=rate,
            end_value=value,
        ))

    return value, tuple(points), tuple(breakdown)


def forecast_month(key, trajectory, curve, max_days=config.MAX_DAYS_BEFORE_CLOSE):
    """Project one open month to its close from its most recent snapshot."""
    if not trajectory:
        return ForecastResult(
            month=key,
            current_raw_value=0.0,
            current_weighted_value=0.0,
            days_to_close=0,
            total_projected_growth=0.0,
            forecast=None,
            trajectory=(),
        )

    latest = latest_point(trajectory)
    days_to_close = latest.days_before_close

    if days_to_close > max_days:
        logger.info(f"{key}: {days_to_close} days to close is beyond the model horizon, no forecast")
        return ForecastResult(
            month=key,
            current_raw_value=latest.raw_pipeline,
            current_weighted_value=latest.weighted_pipeline,
            days_to_close=days_to_close,
            total_projected_growth=0.0,
            forecast=None,
            trajectory=tuple(trajectory),
        )

    final_value, points, _ = project_forward(
        latest.weighted_pipeline, latest.snapshot_date, days_to_close, curve
    )
    if latest.weighted_pipeline:
        total_growth = final_value / latest.weighted_pipeline - 1
    else:
        total_growth = 0.0

    return ForecastResult(
        month=key,
        current_raw_value=latest.raw_pipeline,
        current_weighted_value=latest.weighted_pipeline,
        days_to_close=days_to_close,
        total_projected_growth=total_growth,
        forecast=final_value,
        trajectory=tuple(trajectory),
        forecast_trajectory=points,
    )


def forecast_calculation(result, curve):
    """Auditable day-by-day breakdown behind a forecast, or None if there is no forecast."""
    if result.forecast is None or not result.trajectory:
        return None

    latest = latest_point(result.trajectory)
    final_value, _, breakdown = project_forward(
        latest.weighted_pipeline, latest.snapshot_date, result.days_to_close, curve
    )
    return ForecastCalculation(
        month=result.month,
        start_value=latest.weighted_pipeline,
        end_value=final_value,
        days_to_close=result.days_to_close,
        daily_breakdown=breakdown,
    )
