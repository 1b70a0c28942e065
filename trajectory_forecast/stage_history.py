import pandas as pd

from trajectory_forecast.dates import closing_date
from trajectory_forecast.parser import observations_frame


def open_month_stage_history(observations, as_of):
    """
    Raw pipeline per snapshot day and stage for every month still open at ``as_of``.

    Returns one dict per closing month (sorted) with the analysis period and
    a ``daily_snapshots`` frame of date / stage / total_amount.
    """
    if not observations:
        return []

    df = observations_frame(observations)
    open_months = sorted(m for m in df['month_key'].unique() if closing_date(m) >= as_of)

    history = []
    for key in open_months:
        month_df = df[df['month_key'] == key].copy()
        month_df['date'] = month_df['snapshot_date'].dt.strftime('%Y-%m-%d')
        daily = (
            month_df.groupby(['date', 'stage'], as_index=False)['raw'].sum()
            .rename(columns={'raw': 'total_amount'})
            .sort_values(['date', 'stage'], kind='mergesort')
            .reset_index(drop=True)
        )
        history.append({
            'closing_month': key,
            'analysis_period': {
                'start_date': daily['date'].iloc[0] if len(daily) else '',
                'end_date': daily['date'].iloc[-1] if len(daily) else '',
            },
            'daily_snapshots': daily,
        })

    return history


def stage_history_frame(history):
    frames = [h['daily_snapshots'].assign(closing_month=h['closing_month']) for h in history]
    if not frames:
        return pd.DataFrame(columns=['closing_month', 'date', 'stage', 'total_amount'])
    return pd.concat(frames, ignore_index=True)[['closing_month', 'date', 'stage', 'total_amount']]
