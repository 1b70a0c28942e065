import logging

from trajectory_forecast import config
from trajectory_forecast.dates import closing_date, days_before_close, month_end, parse_month_key, to_utc_naive
from trajectory_forecast.models import ClosingValue, DailySnapshot
from trajectory_forecast.parser import observations_frame

logger = logging.getLogger(__name__)

# --- Month trajectories ---

def aggregate_by_month(observations):
    """
    Collapse observations into one DailySnapshot per (closing month, UTC day).

    Amounts sharing an exact snapshot instant are summed; within a calendar
    day only the latest instant is kept. Each month's trajectory is ordered
    by descending days-before-close, i.e. chronologically.
    """
    if not observations:
        return {}

    df = observations_frame(observations)
    per_instant = df.groupby(['month_key', 'snapshot_date'], as_index=False)[['raw', 'weighted']].sum()
    per_instant['day'] = per_instant['snapshot_date'].dt.normalize()
    daily = (
        per_instant.sort_values('snapshot_date', kind='mergesort')
        .groupby(['month_key', 'day'])
        .tail(1)
    )

    series = {}
    for key, group in daily.groupby('month_key', sort=True):
        end = month_end(*parse_month_key(key))
        points = []
        for row in group.itertuples(index=False):
            snapshot = to_utc_naive(row.snapshot_date)
            points.append(DailySnapshot(
                snapshot_date=snapshot,
                days_before_close=days_before_close(end, snapshot),
                raw_pipeline=float(row.raw),
                weighted_pipeline=float(row.weighted),
            ))
        points.sort(key=lambda p: (-p.days_before_close, p.snapshot_date))
        series[key] = tuple(points)

    return series


def closing_values(month_series):
    """Value at the point nearest day zero, if that point is within tolerance."""
    actuals = {}
    for key, trajectory in month_series.items():
        if not trajectory:
            continue
        closest = min(trajectory, key=lambda p: abs(p.days_before_close))
        if abs(closest.days_before_close) <= config.CLOSING_TOLERANCE_DAYS:
            actuals[key] = ClosingValue(raw=closest.raw_pipeline, weighted=closest.weighted_pipeline)
    return actuals

# --- Classification ---

def classify_months(month_series, actuals, as_of):
    """
    Split month keys into (historical, current).

    Historical months have closed before ``as_of`` and have a positive
    weighted closing value; everything else is current.
    """
    all_months = sorted(month_series)
    historical = [
        key for key in all_months
        if closing_date(key) < as_of and key in actuals and actuals[key].weighted > 0
    ]
    historical_set = set(historical)
    current = [key for key in all_months if key not in historical_set]

    logger.info(f"Classified {len(historical)} historical and {len(current)} current months")
    return historical, current
