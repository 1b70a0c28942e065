import numpy as np

from trajectory_forecast import config
from trajectory_forecast.models import SimilarityPoint, TrajectoryComparison


def point_near(trajectory, target_days, tolerance=config.CHECKPOINT_TOLERANCE):
    """Trajectory point closest to ``target_days`` if within ``tolerance``; first wins ties."""
    if not trajectory:
        return None
    closest = min(trajectory, key=lambda p: abs(p.days_before_close - target_days))
    if abs(closest.days_before_close - target_days) <= tolerance:
        return closest
    return None


def trajectory_similarity(target, candidate, checkpoints=config.SIMILARITY_CHECKPOINTS):
    similarities = []
    for days_before in checkpoints:
        current = point_near(target, days_before)
        historical = point_near(candidate, days_before)
        if current is None or historical is None:
            continue
        if historical.weighted_pipeline == 0:
            continue

        pct_diff = (current.weighted_pipeline - historical.weighted_pipeline) / historical.weighted_pipeline * 100
        similarities.append(SimilarityPoint(
            days_before=days_before,
            current_value=current.weighted_pipeline,
            historical_value=historical.weighted_pipeline,
            pct_difference=pct_diff,
        ))
    return similarities


def candidate_months(historical_months, cutoff=config.SIMILARITY_CUTOFF_MONTH):
    return [m for m in historical_months if m >= cutoff]


def find_similar_months(target, forecast_value, historical_months, month_series, actuals,
                        cutoff=config.SIMILARITY_CUTOFF_MONTH, limit=config.SIMILAR_MONTHS_LIMIT):
    """
    Rank historical months by how closely they track ``target``.

    score = 0.7 * (|mean pct diff| + std pct diff) + 0.3 * |closing - forecast| / forecast
    Lower is more similar.
    """
    if not target:
        return []

    comparisons = []
    for month in candidate_months(historical_months, cutoff):
        candidate = month_series.get(month)
        if not candidate:
            continue

        similarities = trajectory_similarity(target, candidate)
        if not similarities:
            continue

        diffs = np.array([s.pct_difference for s in similarities])
        avg_pct_diff = float(diffs.mean())
        spread = float(diffs.std())
        trajectory_score = abs(avg_pct_diff) + spread

        historical_closing = actuals[month].weighted if month in actuals else 0.0
        if forecast_value and forecast_value > 0:
            forecast_diff = abs(historical_closing - forecast_value) / forecast_value
        else:
            forecast_diff = 1.0

        score = trajectory_score * config.TRAJECTORY_SCORE_WEIGHT + forecast_diff * config.FORECAST_SCORE_WEIGHT
        comparisons.append(TrajectoryComparison(
            historical_month=month,
            avg_pct_diff=avg_pct_diff,
            variance=spread,
            similarities=tuple(similarities),
            historical_closing=historical_closing,
            score=score,
        ))

    comparisons.sort(key=lambda c: c.score)
    return comparisons[:limit]
