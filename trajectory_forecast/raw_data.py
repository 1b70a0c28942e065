"""
Raw pipeline overview.

Unlike the forecasting path this keeps every closing month and every
snapshot distance; rows only need to be parseable. Values are raw amounts.
"""
import logging

from trajectory_forecast.dates import closing_date, utc_now
from trajectory_forecast.parser import observations_frame, parse_records

logger = logging.getLogger(__name__)

RECENT_HISTORICAL_MONTHS = 3


def _totals_by(df, column, value_name='total_value'):
    return df.groupby(column, as_index=False)['raw'].sum().rename(columns={'raw': value_name})


def analyze_month(df, key):
    month_df = df[df['month_key'] == key]
    history = _totals_by(month_df, 'date').sort_values('date').reset_index(drop=True)

    latest_day = history['date'].iloc[-1] if len(history) else ''
    latest = month_df[month_df['date'] == latest_day]
    stage_breakdown = (
        _totals_by(latest, 'stage')
        .sort_values('total_value', ascending=False, kind='mergesort')
        .reset_index(drop=True)
    )

    return {
        'month': key,
        'history': history,
        'stage_breakdown': stage_breakdown,
        'total_value': float(history['total_value'].iloc[-1]) if len(history) else 0.0,
        'data_points': len(latest),
    }


def summarize_raw_data(csv_text, as_of=None):
    observations, dropped = parse_records(csv_text, enforce_window=False)
    if not observations:
        logger.warning("Raw overview: no parseable rows")
        return None

    df = observations_frame(observations)
    df['date'] = df['snapshot_date'].dt.strftime('%Y-%m-%d')

    pipeline_history = _totals_by(df, 'date').sort_values('date').reset_index(drop=True)
    latest_day = pipeline_history['date'].iloc[-1]
    latest = df[df['date'] == latest_day]

    overall_stage_breakdown = (
        _totals_by(latest, 'stage')
        .sort_values('total_value', ascending=False, kind='mergesort')
        .reset_index(drop=True)
    )
    upcoming_month_totals = (
        _totals_by(latest, 'month_key')
        .rename(columns={'month_key': 'closing_month'})
        .sort_values('closing_month')
        .reset_index(drop=True)
    )

    today = (as_of or utc_now()).replace(hour=0, minute=0, second=0, microsecond=0)
    all_months = sorted(df['month_key'].unique())
    historical_keys = [m for m in all_months if closing_date(m) < today]
    upcoming_keys = [m for m in all_months if closing_date(m) >= today]

    return {
        'latest_snapshot': {
            'date': latest_day,
            'total_value': float(pipeline_history['total_value'].iloc[-1]),
            'data_points': len(latest),
        },
        'pipeline_history': pipeline_history,
        'overall_stage_breakdown': overall_stage_breakdown,
        'upcoming_month_totals': upcoming_month_totals,
        'historical_months': [analyze_month(df, m) for m in historical_keys[-RECENT_HISTORICAL_MONTHS:]],
        'upcoming_months': [analyze_month(df, m) for m in upcoming_keys],
        'dropped_rows': dropped,
    }
