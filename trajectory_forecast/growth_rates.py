"""
Empirical daily growth-rate model.

For every pair of consecutive trajectory points at most MAX_GAP_DAYS apart,
the implied per-day compounding rate is attributed to each day the gap spans.
The rate for a day is the median of everything attributed to it, and the
curve used for projection is a centred moving average of those medians.
"""
import logging

import numpy as np
import pandas as pd

from trajectory_forecast import config
from trajectory_forecast.models import GrowthRateCurve

logger = logging.getLogger(__name__)


def implied_daily_growth(previous, current):
    """Per-day rate between two points, or None if the pair is not usable."""
    days_diff = previous.days_before_close - current.days_before_close
    if days_diff < 1 or days_diff > config.MAX_GAP_DAYS:
        return None
    if previous.weighted_pipeline <= 0:
        return None

    ratio = current.weighted_pipeline / previous.weighted_pipeline
    if ratio < 0:
        return None
    growth = ratio ** (1.0 / days_diff) - 1
    if growth <= -config.GROWTH_OUTLIER_LIMIT or growth >= config.GROWTH_OUTLIER_LIMIT:
        return None
    return growth


def collect_daily_rates(month_series, training_months, horizon=config.HORIZON_DAYS):
    """One bucket of attributed rates per day before close, 0..horizon-1."""
    buckets = [[] for _ in range(horizon)]

    for key in training_months:
        trajectory = month_series.get(key)
        if not trajectory:
            continue

        for previous, current in zip(trajectory, trajectory[1:]):
            growth = implied_daily_growth(previous, current)
            if growth is None:
                continue
            days_diff = previous.days_before_close - current.days_before_close
            for day in range(current.days_before_close, current.days_before_close + days_diff):
                if 0 <= day < horizon:
                    buckets[day].append(growth)

    return buckets


def median_rates(buckets):
    return np.array([np.median(b) if b else 0.0 for b in buckets], dtype=float)


def smooth_rates(rates, radius=config.SMOOTHING_RADIUS):
    """Centred moving average; the window narrows at both ends."""
    smoothed = pd.Series(rates, dtype=float).rolling(
        window=2 * radius + 1,
        center=True,
        min_periods=1
    ).mean()
    return smoothed.to_numpy(dtype=float)


def fit_growth_rates(month_series, training_months):
    training_months = list(training_months)
    buckets = collect_daily_rates(month_series, training_months)
    observed = sum(len(b) for b in buckets)
    if observed == 0:
        logger.warning(f"No usable growth observations in {len(training_months)} training months; curve is flat")

    median = median_rates(buckets)
    return GrowthRateCurve(median=median, smoothed=smooth_rates(median))


def compound(start_value, curve, days_to_close):
    """Compound ``start_value`` through the smoothed rates for days below ``days_to_close``."""
    value = start_value
    for day in range(days_to_close - 1, -1, -1):
        value *= (1 + curve.rate(day))
    return value
