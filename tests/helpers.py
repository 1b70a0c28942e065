from datetime import timedelta

import numpy as np

from trajectory_forecast.dates import month_end, parse_month_key
from trajectory_forecast.models import DailySnapshot, GrowthRateCurve

HEADER = 'snapShotTime,date,totalAmount,stage'


def csv_line(snapshot, closing, amount, stage):
    return f'{snapshot},{closing},"{amount}",{stage}'


def make_csv(rows):
    """rows: iterable of (snapshot, closing, amount, stage) tuples."""
    return '\n'.join([HEADER] + [csv_line(*r) for r in rows]) + '\n'


def make_trajectory(key, points, raw=None):
    """
    points: iterable of (days_before_close, weighted). Each snapshot sits an
    exact number of days before the month's last instant.
    """
    end = month_end(*parse_month_key(key))
    trajectory = [
        DailySnapshot(
            snapshot_date=end - timedelta(days=days),
            days_before_close=days,
            raw_pipeline=raw if raw is not None else weighted,
            weighted_pipeline=weighted,
        )
        for days, weighted in points
    ]
    trajectory.sort(key=lambda p: -p.days_before_close)
    return tuple(trajectory)


def flat_curve(rate, horizon=90):
    return GrowthRateCurve(median=np.full(horizon, rate), smoothed=np.full(horizon, rate))


def steady_month(key, start=1000.0, rate=0.01, horizon=60):
    """Daily points from ``horizon`` days out to day zero growing at ``rate`` per day."""
    return make_trajectory(key, [(d, start * (1 + rate) ** (horizon - d)) for d in range(horizon, -1, -1)])
