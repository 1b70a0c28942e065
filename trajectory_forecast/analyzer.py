import logging
from dataclasses import replace
from types import MappingProxyType

from trajectory_forecast import config
from trajectory_forecast.aggregation import aggregate_by_month, classify_months, closing_values
from trajectory_forecast.backtest import run_backtest, run_detailed_backtest
from trajectory_forecast.dates import utc_now
from trajectory_forecast.forecast import forecast_calculation, forecast_month
from trajectory_forecast.goal_seek import default_peak, find_similar_months_for_goal_seek, goal_seek_trajectory
from trajectory_forecast.growth_rates import fit_growth_rates
from trajectory_forecast.models import AppendixData
from trajectory_forecast.parser import parse_records
from trajectory_forecast.peak_decline import analyze_peak_decline
from trajectory_forecast.raw_data import summarize_raw_data
from trajectory_forecast.similarity import find_similar_months
from trajectory_forecast.stage_history import open_month_stage_history

logger = logging.getLogger(__name__)


class AnalyzerNotLoadedError(RuntimeError):
    pass


class _LoadedState:
    """Everything derived from one CSV load. Built once, never mutated."""

    def __init__(self, csv_text, as_of, observations, dropped, month_series, actuals, historical, current, curve,
                 peak_data):
        self.csv_text = csv_text
        self.as_of = as_of
        self.observations = tuple(observations)
        self.dropped = dropped
        self.month_series = MappingProxyType(month_series)
        self.actuals = MappingProxyType(actuals)
        self.historical = tuple(historical)
        self.current = tuple(current)
        self.curve = curve
        self.peak_data = tuple(peak_data)


class TrajectoryAnalyzer:
    """
    Forecasts open closing months from pipeline snapshots.

    ``load_data`` parses and derives everything in one pass; every getter
    reads that state. Loading again replaces the state wholesale. Calling a
    getter before any load is a programming error.
    """

    def __init__(self, stage_weights=config.STAGE_WEIGHTS, analysis_year=config.ANALYSIS_YEAR, as_of=None):
        self.stage_weights = MappingProxyType(dict(stage_weights))
        self.analysis_year = analysis_year
        self.as_of = as_of
        self._state = None

    @property
    def similarity_cutoff(self):
        return f'{self.analysis_year}-01'

    @property
    def backtest_start(self):
        return f'{self.analysis_year}-04'

    # --- Loading ---

    def load_data(self, csv_text):
        as_of = self.as_of or utc_now()
        observations, dropped = parse_records(csv_text, self.stage_weights, self.analysis_year)

        if not observations:
            logger.warning(f"No valid observations for {self.analysis_year}; analyzer has no data")
            self._state = _LoadedState(csv_text, as_of, [], dropped, {}, {}, [], [], None, [])
            return self

        month_series = aggregate_by_month(observations)
        actuals = closing_values(month_series)
        historical, current = classify_months(month_series, actuals, as_of)
        curve = fit_growth_rates(month_series, historical)
        peak_data = analyze_peak_decline(observations, historical, actuals)

        self._state = _LoadedState(
            csv_text, as_of, observations, dropped, month_series, actuals, historical, current, curve, peak_data
        )
        logger.info(f"Loaded {len(observations):,} observations across {len(month_series)} closing months")
        return self

    def _loaded(self):
        if self._state is None:
            raise AnalyzerNotLoadedError("load_data() must be called before querying the analyzer")
        return self._state

    def has_data(self):
        return self._state is not None and len(self._state.observations) > 0

    # --- Read-only views ---

    @property
    def dropped_rows(self):
        return self._loaded().dropped

    @property
    def observations(self):
        return self._loaded().observations

    @property
    def month_series(self):
        return self._loaded().month_series

    @property
    def actual_closing_values(self):
        return self._loaded().actuals

    @property
    def historical_months(self):
        return self._loaded().historical

    @property
    def current_months(self):
        return self._loaded().current

    @property
    def growth_curve(self):
        return self._loaded().curve

    # --- Forecasts ---

    def get_forecast(self):
        state = self._loaded()
        results = []
        for key in state.current:
            result = forecast_month(key, state.month_series.get(key, ()), state.curve)
            if result.forecast is not None:
                similar = find_similar_months(
                    state.month_series[key], result.forecast, state.historical,
                    state.month_series, state.actuals, cutoff=self.similarity_cutoff
                )
                result = replace(result, similar_months=tuple(similar))
            results.append(result)
        return results

    def get_appendix_data(self):
        state = self._loaded()
        if state.curve is None:
            return None

        calculations = []
        for result in self.get_forecast():
            calc = forecast_calculation(result, state.curve)
            if calc is not None and calc.daily_breakdown:
                calculations.append(calc)

        frame = state.curve.to_frame()
        return AppendixData(
            smoothed_growth_rates=frame[['days_before', 'smoothed_rate']].rename(columns={'smoothed_rate': 'rate'}),
            median_growth_rates=frame[['days_before', 'median_rate']].rename(columns={'median_rate': 'rate'}),
            forecast_calculations=tuple(calculations),
        )

    def get_historical_data(self):
        state = self._loaded()
        return {key: state.month_series[key] for key in state.historical if key in state.month_series}

    def get_peak_decline_data(self):
        return list(self._loaded().peak_data)

    def get_stage_history(self):
        state = self._loaded()
        return open_month_stage_history(state.observations, state.as_of)

    def get_raw_data_summary(self):
        """Lenient overview of the last loaded CSV: every closing month, raw amounts."""
        state = self._loaded()
        return summarize_raw_data(state.csv_text, state.as_of)

    # --- Backtest ---

    def get_backtest_results(self):
        state = self._loaded()
        return run_backtest(state.month_series, state.actuals, state.historical, start_month=self.backtest_start)

    def get_detailed_backtest_results(self):
        state = self._loaded()
        return run_detailed_backtest(
            state.month_series, state.actuals, state.historical, start_month=self.backtest_start
        )

    # --- Goal seek ---

    def generate_goal_seek_trajectory(self, original_trajectory, goal_value):
        state = self._loaded()
        if state.curve is None:
            return tuple(original_trajectory)
        return goal_seek_trajectory(original_trajectory, goal_value, state.curve)

    def find_similar_months_for_goal_seek(self, goal_value, peak_value=None, days_at_peak=config.DEFAULT_DAYS_AT_PEAK):
        state = self._loaded()
        if peak_value is None:
            peak_value = default_peak(goal_value)
        return find_similar_months_for_goal_seek(
            goal_value, peak_value, days_at_peak, state.peak_data, state.historical, cutoff=self.similarity_cutoff
        )
