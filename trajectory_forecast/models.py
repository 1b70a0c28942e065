from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Observation:
    snapshot_date: datetime
    closing_month: date
    month_key: str
    days_before_close: int
    raw_amount: float
    stage: str
    weighted_amount: float


@dataclass(frozen=True)
class DailySnapshot:
    snapshot_date: datetime
    days_before_close: int
    raw_pipeline: float
    weighted_pipeline: float


@dataclass(frozen=True)
class ClosingValue:
    raw: float
    weighted: float


@dataclass(frozen=True)
class GrowthRateCurve:
    """Day-indexed daily growth rates; index ``d`` is ``d`` days before close."""
    median: np.ndarray
    smoothed: np.ndarray

    def __post_init__(self):
        for arr in (self.median, self.smoothed):
            arr.flags.writeable = False

    def rate(self, day):
        if 0 <= day < len(self.smoothed):
            return float(self.smoothed[day])
        return 0.0

    def to_frame(self):
        return pd.DataFrame({
            'days_before': np.arange(len(self.median)),
            'median_rate': self.median,
            'smoothed_rate': self.smoothed,
        })


@dataclass(frozen=True)
class DailyBreakdownRow:
    date: str
    days_before: int
    start_value: float
    growth_rate: float
    end_value: float


@dataclass(frozen=True)
class ForecastCalculation:
    month: str
    start_value: float
    end_value: float
    days_to_close: int
    daily_breakdown: tuple


@dataclass(frozen=True)
class SimilarityPoint:
    days_before: int
    current_value: float
    historical_value: float
    pct_difference: float


@dataclass(frozen=True)
class TrajectoryComparison:
    historical_month: str
    avg_pct_diff: float
    variance: float
    similarities: tuple
    historical_closing: float
    score: float


@dataclass(frozen=True)
class ForecastResult:
    month: str
    current_raw_value: float
    current_weighted_value: float
    days_to_close: int
    total_projected_growth: float
    forecast: Optional[float]
    trajectory: tuple
    forecast_trajectory: tuple = ()
    similar_months: tuple = ()

    @property
    def is_recommended(self):
        return self.forecast is not None


@dataclass(frozen=True)
class PeakDecline:
    month: str
    peak_date: datetime
    peak_raw_value: float
    peak_weighted_value: float
    days_before_closing: int
    actual_closing_raw_value: float
    actual_closing_weighted_value: float
    decline_percentage_raw: float
    decline_percentage_weighted: Optional[float]


@dataclass(frozen=True)
class BacktestResult:
    month: str
    days_before: int
    prediction: float
    actual: float


@dataclass(frozen=True)
class BacktestRun:
    test_month: str
    training_months: tuple
    results: tuple


@dataclass(frozen=True)
class AppendixData:
    smoothed_growth_rates: pd.DataFrame
    median_growth_rates: pd.DataFrame
    forecast_calculations: tuple = field(default_factory=tuple)
