"""
Walk-forward backtest of the growth-rate model.

Each historical month from BACKTEST_START_MONTH onward is treated as unseen:
a fresh curve is fitted on the three historical months immediately before
it, and the month is projected to close from each checkpoint. Nothing from
the test month or any later month reaches the training set.
"""
import logging

import numpy as np

from trajectory_forecast import config
from trajectory_forecast.growth_rates import compound, fit_growth_rates
from trajectory_forecast.models import BacktestResult, BacktestRun
from trajectory_forecast.similarity import point_near

logger = logging.getLogger(__name__)


def _walk_forward(month_series, actuals, historical_months, start_month, training_size, checkpoints):
    months = sorted(historical_months)
    start_index = next((i for i, m in enumerate(months) if m >= start_month), None)
    if start_index is None:
        logger.warning(f"No historical months on or after {start_month}; backtest skipped")
        return

    for i in range(max(start_index, training_size), len(months)):
        test_month = months[i]
        training_months = months[i - training_size:i]

        closing = actuals.get(test_month)
        if closing is None or not closing.weighted:
            continue

        curve = fit_growth_rates(month_series, training_months)
        trajectory = month_series.get(test_month, ())

        results = []
        for checkpoint in checkpoints:
            start = point_near(trajectory, checkpoint)
            if start is None:
                continue
            prediction = compound(start.weighted_pipeline, curve, start.days_before_close)
            results.append(BacktestResult(
                month=test_month,
                days_before=start.days_before_close,
                prediction=prediction,
                actual=closing.weighted,
            ))

        yield BacktestRun(test_month=test_month, training_months=tuple(training_months), results=tuple(results))


def run_detailed_backtest(month_series, actuals, historical_months,
                          start_month=config.BACKTEST_START_MONTH,
                          training_size=config.BACKTEST_TRAINING_MONTHS,
                          checkpoints=config.BACKTEST_CHECKPOINTS):
    runs = list(_walk_forward(month_series, actuals, historical_months, start_month, training_size, checkpoints))
    logger.info(f"Backtest: {len(runs)} test months, {sum(len(r.results) for r in runs)} predictions")
    return runs


def run_backtest(month_series, actuals, historical_months,
                 start_month=config.BACKTEST_START_MONTH,
                 training_size=config.BACKTEST_TRAINING_MONTHS,
                 checkpoints=config.BACKTEST_CHECKPOINTS):
    runs = run_detailed_backtest(month_series, actuals, historical_months, start_month, training_size, checkpoints)
    return [result for run in runs for result in run.results]


def calculate_accuracy_metrics(results, horizon_days=config.ACCURACY_HORIZON_DAYS,
                               hit_threshold=config.HIT_RATE_THRESHOLD):
    """Summary accuracy statistics over backtest predictions."""
    valid = [r for r in results if r.actual]
    if not valid:
        return {
            'mean_absolute_error_pct': 0, 'bias_pct': 0, 'avg_accuracy_within_30_days': 0,
            'hit_rate_within_10pct': 0, 'num_predictions': 0
        }

    errors = np.array([(r.prediction - r.actual) / r.actual for r in valid])
    abs_errors = np.abs(errors)
    accuracies = 100 - abs_errors * 100

    near = np.array([r.days_before <= horizon_days for r in valid])
    avg_accuracy_near = float(accuracies[near].mean()) if near.any() else 0

    return {
        'mean_absolute_error_pct': float(abs_errors.mean() * 100),
        'bias_pct': float(errors.mean() * 100),
        'avg_accuracy_within_30_days': avg_accuracy_near,
        'hit_rate_within_10pct': float((abs_errors <= hit_threshold).mean() * 100),
        'num_predictions': len(valid)
    }
