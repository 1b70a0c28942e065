import logging

from trajectory_forecast.dates import days_before_close, month_end, month_start, parse_month_key, previous_month, to_utc_naive
from trajectory_forecast.models import PeakDecline
from trajectory_forecast.parser import observations_frame

logger = logging.getLogger(__name__)


def _decline(peak, actual):
    if not peak:
        return None
    return (peak - actual) / peak * 100


def analyze_peak_decline(observations, historical_months, actuals):
    """
    Peak pipeline for each closed month and how far it fell by the close.

    The peak is searched over raw observations (not the daily trajectory)
    from the first day of the prior month to the end of the closing month;
    the snapshot instant with the highest raw total for the month wins, the
    earliest instant on ties.
    """
    if not observations:
        return []

    df = observations_frame(observations)
    results = []

    for key in historical_months:
        if key not in actuals:
            continue
        year, month = parse_month_key(key)
        window_start = month_start(*previous_month(year, month))
        window_end = month_end(year, month)

        in_window = df[(df['snapshot_date'] >= window_start) & (df['snapshot_date'] <= window_end)]
        if in_window.empty:
            continue

        totals = in_window[in_window['month_key'] == key].groupby('snapshot_date')[['raw', 'weighted']].sum()
        if totals.empty or totals['raw'].max() <= 0:
            logger.info(f"{key}: no positive pipeline in peak window, skipped")
            continue

        peak_at = totals['raw'].idxmax()
        peak_raw = float(totals.loc[peak_at, 'raw'])
        peak_weighted = float(totals.loc[peak_at, 'weighted'])
        peak_date = to_utc_naive(peak_at)
        closing = actuals[key]

        results.append(PeakDecline(
            month=key,
            peak_date=peak_date,
            peak_raw_value=peak_raw,
            peak_weighted_value=peak_weighted,
            days_before_closing=days_before_close(window_end, peak_date),
            actual_closing_raw_value=closing.raw,
            actual_closing_weighted_value=closing.weighted,
            decline_percentage_raw=_decline(peak_raw, closing.raw),
            decline_percentage_weighted=_decline(peak_weighted, closing.weighted),
        ))

    results.sort(key=lambda r: r.month)
    return results
