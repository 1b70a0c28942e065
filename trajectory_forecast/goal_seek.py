"""
Goal seek: what uniform daily lift on top of the learned curve would make an
open month close at a chosen value, and which closed months looked like that.
"""
import logging
import math

import numpy as np

from trajectory_forecast import config
from trajectory_forecast.forecast import latest_point, project_forward
from trajectory_forecast.growth_rates import compound
from trajectory_forecast.models import TrajectoryComparison
from trajectory_forecast.similarity import candidate_months

logger = logging.getLogger(__name__)

MAX_BISECTION_STEPS = 200


def required_daily_lift(starting_value, goal_value, curve, days_to_close):
    """
    Lift L such that starting_value * prod(1 + r_d + L) == goal_value.

    The first guess is the closed form (goal / base_forecast) ** (1 / days) - 1.
    That is only exact on a curve of zero rates; on any other curve it misses
    the goal, and the returned lift differs from it, found by bisection on the
    log of the compounded growth.

    Raises ValueError unless starting value, goal, days and base forecast
    are all positive.
    """
    if days_to_close <= 0 or starting_value <= 0 or goal_value <= 0:
        raise ValueError(
            f"Goal seek needs positive start, goal and days (got {starting_value}, {goal_value}, {days_to_close})"
        )
    base_forecast = compound(starting_value, curve, days_to_close)
    if base_forecast <= 0:
        raise ValueError(f"Base forecast {base_forecast} is not positive")
    estimate = (goal_value / base_forecast) ** (1.0 / days_to_close) - 1

    rates = np.array([curve.rate(day) for day in range(days_to_close)], dtype=float)
    target = math.log(goal_value / starting_value)

    def excess(lift):
        return float(np.log1p(rates + lift).sum()) - target

    lower = -1.0 - float(rates.min())
    if estimate > lower and abs(excess(estimate)) <= 1e-12:
        return estimate

    upper = max(estimate, 0.0) + 1.0
    while excess(upper) < 0:
        upper = upper * 2 + 1.0

    for _ in range(MAX_BISECTION_STEPS):
        mid = (lower + upper) / 2
        if mid <= lower or mid >= upper:
            break
        if excess(mid) < 0:
            lower = mid
        else:
            upper = mid
    return upper


def goal_seek_trajectory(trajectory, goal_value, curve):
    """
    Original trajectory followed by a projection that closes at ``goal_value``.

    Invalid inputs (nothing to project from, non-positive starting value,
    goal or base forecast) return the trajectory unchanged.
    """
    if not trajectory:
        return ()
    trajectory = tuple(trajectory)

    latest = latest_point(trajectory)
    starting_value = latest.weighted_pipeline
    days_to_close = latest.days_before_close

    if starting_value <= 0 or days_to_close <= 0 or goal_value <= 0:
        return trajectory

    base_forecast = compound(starting_value, curve, days_to_close)
    if base_forecast <= 0:
        return trajectory

    lift = required_daily_lift(starting_value, goal_value, curve, days_to_close)
    _, projected, _ = project_forward(starting_value, latest.snapshot_date, days_to_close, curve, lift=lift)

    logger.debug(f"Goal {goal_value:,.0f}: base {base_forecast:,.0f}, daily lift {lift:+.4%}")
    return trajectory + tuple(p for p in projected if p.days_before_close < days_to_close)


def default_peak(goal_value):
    return goal_value * config.DEFAULT_PEAK_OVER_GOAL


def find_similar_months_for_goal_seek(goal_value, peak_value, days_at_peak, peak_data, historical_months,
                                      cutoff=config.SIMILARITY_CUTOFF_MONTH, limit=config.GOAL_SEEK_MATCH_LIMIT):
    """
    Closed months whose close, peak and peak timing best match a scenario.

    score = 0.6 * |close - goal| / goal + 0.3 * |peak - peak_value| / peak_value
            + 0.1 * |days_at_peak - days| / days
    """
    if goal_value <= 0 or peak_value <= 0 or days_at_peak <= 0:
        return []

    peaks = {p.month: p for p in peak_data}
    comparisons = []
    for month in candidate_months(historical_months, cutoff):
        peak = peaks.get(month)
        if peak is None or not peak.actual_closing_weighted_value:
            continue

        closing = peak.actual_closing_weighted_value
        closing_diff = abs((closing - goal_value) / goal_value)
        peak_diff = abs((peak.peak_weighted_value - peak_value) / peak_value)
        timing_diff = abs((peak.days_before_closing - days_at_peak) / days_at_peak)

        score = (closing_diff * config.GOAL_CLOSING_WEIGHT
                 + peak_diff * config.GOAL_PEAK_WEIGHT
                 + timing_diff * config.GOAL_TIMING_WEIGHT)
        comparisons.append(TrajectoryComparison(
            historical_month=month,
            avg_pct_diff=0.0,
            variance=0.0,
            similarities=(),
            historical_closing=closing,
            score=score,
        ))

    comparisons.sort(key=lambda c: c.score)
    return comparisons[:limit]
