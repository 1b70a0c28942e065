"""
Tabular export of engine outputs.

Sheets / CSVs:
1. Forecast - one row per open month (forecast or "Not recommended")
2. Similar_Months - top historical analogs per forecast month
3. Growth_Rates - median and smoothed daily rates by days before close
4. Forecast_Breakdown - day-by-day compounding behind each forecast
5. Backtest - walk-forward predictions vs actual close, plus accuracy summary
6. Peak_Decline - peak pipeline and decline to close per closed month
7. Trajectories - daily raw / weighted pipeline of every closed month
8. Raw_Overview - raw pipeline per snapshot day and latest stage / month totals
9. Stage_History - raw totals per day and stage for every open month
"""
import logging
import os

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from trajectory_forecast.backtest import calculate_accuracy_metrics
from trajectory_forecast.stage_history import stage_history_frame

logger = logging.getLogger(__name__)

# Styling
HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill('solid', fgColor='2F5496')
CURRENCY_FORMAT = '$#,##0'
PERCENT_FORMAT = '0.0%'
RATE_FORMAT = '0.000%'
NUMBER_FORMAT = '#,##0.0'
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)

# --- Frames ---

def forecast_frame(results):
    rows = []
    for r in results:
        rows.append({
            'month': r.month,
            'current_raw_value': r.current_raw_value,
            'current_weighted_value': r.current_weighted_value,
            'days_to_close': r.days_to_close,
            'projected_growth': r.total_projected_growth if r.is_recommended else None,
            'forecast': r.forecast,
            'status': 'Forecast' if r.is_recommended else 'Not recommended',
        })
    return pd.DataFrame(rows, columns=['month', 'current_raw_value', 'current_weighted_value', 'days_to_close',
                                       'projected_growth', 'forecast', 'status'])


def similar_months_frame(results):
    rows = []
    for r in results:
        for rank, comp in enumerate(r.similar_months, 1):
            rows.append({
                'month': r.month,
                'rank': rank,
                'historical_month': comp.historical_month,
                'score': comp.score,
                'avg_pct_diff': comp.avg_pct_diff,
                'std_pct_diff': comp.variance,
                'checkpoints_matched': len(comp.similarities),
                'historical_closing': comp.historical_closing,
            })
    return pd.DataFrame(rows, columns=['month', 'rank', 'historical_month', 'score', 'avg_pct_diff',
                                       'std_pct_diff', 'checkpoints_matched', 'historical_closing'])


def breakdown_frame(calculations):
    rows = []
    for calc in calculations:
        for step in calc.daily_breakdown:
            rows.append({
                'month': calc.month,
                'date': step.date,
                'days_before': step.days_before,
                'start_value': step.start_value,
                'growth_rate': step.growth_rate,
                'end_value': step.end_value,
            })
    return pd.DataFrame(rows, columns=['month', 'date', 'days_before', 'start_value', 'growth_rate', 'end_value'])


def backtest_frame(results):
    df = pd.DataFrame(
        [{'month': r.month, 'days_before': r.days_before, 'prediction': r.prediction, 'actual': r.actual}
         for r in results],
        columns=['month', 'days_before', 'prediction', 'actual']
    )
    df['error_pct'] = (df['prediction'] - df['actual']) / df['actual']
    return df


def peak_decline_frame(peaks):
    rows = []
    for p in peaks:
        rows.append({
            'month': p.month,
            'peak_date': p.peak_date.strftime('%Y-%m-%d %H:%M'),
            'peak_raw_value': p.peak_raw_value,
            'peak_weighted_value': p.peak_weighted_value,
            'days_before_closing': p.days_before_closing,
            'actual_closing_raw_value': p.actual_closing_raw_value,
            'actual_closing_weighted_value': p.actual_closing_weighted_value,
            'decline_pct_raw': p.decline_percentage_raw,
            'decline_pct_weighted': p.decline_percentage_weighted,
        })
    return pd.DataFrame(rows, columns=['month', 'peak_date', 'peak_raw_value', 'peak_weighted_value',
                                       'days_before_closing', 'actual_closing_raw_value',
                                       'actual_closing_weighted_value', 'decline_pct_raw', 'decline_pct_weighted'])


def trajectories_frame(month_series):
    rows = []
    for key, trajectory in month_series.items():
        for p in trajectory:
            rows.append({
                'month': key,
                'snapshot_date': p.snapshot_date.strftime('%Y-%m-%d %H:%M'),
                'days_before_close': p.days_before_close,
                'raw_pipeline': p.raw_pipeline,
                'weighted_pipeline': p.weighted_pipeline,
            })
    return pd.DataFrame(rows, columns=['month', 'snapshot_date', 'days_before_close', 'raw_pipeline',
                                       'weighted_pipeline'])


def raw_overview_frames(summary):
    if summary is None:
        return {
            'raw_pipeline_history': pd.DataFrame(columns=['date', 'total_value']),
            'raw_stage_breakdown': pd.DataFrame(columns=['stage', 'total_value']),
            'raw_month_totals': pd.DataFrame(columns=['closing_month', 'total_value']),
        }
    return {
        'raw_pipeline_history': summary['pipeline_history'],
        'raw_stage_breakdown': summary['overall_stage_breakdown'],
        'raw_month_totals': summary['upcoming_month_totals'],
    }

# --- Excel formatting helpers ---

def style_header_row(ws, row_num, num_cols):
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=row_num, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = THIN_BORDER


def auto_width(ws):
    for column_cells in ws.columns:
        column = column_cells[0].column_letter
        max_length = max((len(str(c.value)) for c in column_cells if c.value is not None), default=0)
        ws.column_dimensions[column].width = min(max_length + 2, 40)


def add_dataframe_to_sheet(ws, df, start_row=1, currency_cols=None, pct_cols=None, rate_cols=None, number_cols=None):
    currency_cols = currency_cols or []
    pct_cols = pct_cols or []
    rate_cols = rate_cols or []
    number_cols = number_cols or []

    for c_idx, col_name in enumerate(df.columns, 1):
        ws.cell(row=start_row, column=c_idx, value=col_name)
    style_header_row(ws, start_row, len(df.columns))

    for r_idx, row in enumerate(df.itertuples(index=False), start_row + 1):
        for c_idx, value in enumerate(row, 1):
            if value is not None and pd.isna(value):
                value = None
            cell = ws.cell(row=r_idx, column=c_idx, value=value)
            cell.border = THIN_BORDER

            col_name = df.columns[c_idx - 1]
            if col_name in currency_cols:
                cell.number_format = CURRENCY_FORMAT
            elif col_name in pct_cols:
                cell.number_format = PERCENT_FORMAT
            elif col_name in rate_cols:
                cell.number_format = RATE_FORMAT
            elif col_name in number_cols:
                cell.number_format = NUMBER_FORMAT

    auto_width(ws)

# --- Main export ---

def build_tables(analyzer):
    forecasts = analyzer.get_forecast()
    appendix = analyzer.get_appendix_data()
    backtest = analyzer.get_backtest_results()

    return {
        'forecast_summary': forecast_frame(forecasts),
        'similar_months': similar_months_frame(forecasts),
        'growth_rates': analyzer.growth_curve.to_frame() if analyzer.growth_curve is not None else pd.DataFrame(),
        'forecast_breakdown': breakdown_frame(appendix.forecast_calculations if appendix else ()),
        'backtest_results': backtest_frame(backtest),
        'backtest_summary': pd.DataFrame([calculate_accuracy_metrics(backtest)]),
        'peak_decline': peak_decline_frame(analyzer.get_peak_decline_data()),
        'trajectories': trajectories_frame(analyzer.get_historical_data()),
        'stage_history': stage_history_frame(analyzer.get_stage_history()),
        **raw_overview_frames(analyzer.get_raw_data_summary()),
    }


def write_workbook(tables, path):
    wb = Workbook()

    ws = wb.active
    ws.title = 'Forecast'
    add_dataframe_to_sheet(
        ws, tables['forecast_summary'],
        currency_cols=['current_raw_value', 'current_weighted_value', 'forecast'],
        pct_cols=['projected_growth']
    )

    add_dataframe_to_sheet(
        wb.create_sheet('Similar_Months'), tables['similar_months'],
        currency_cols=['historical_closing'],
        number_cols=['score', 'avg_pct_diff', 'std_pct_diff']
    )
    add_dataframe_to_sheet(
        wb.create_sheet('Growth_Rates'), tables['growth_rates'],
        rate_cols=['median_rate', 'smoothed_rate']
    )
    add_dataframe_to_sheet(
        wb.create_sheet('Forecast_Breakdown'), tables['forecast_breakdown'],
        currency_cols=['start_value', 'end_value'],
        rate_cols=['growth_rate']
    )

    ws_bt = wb.create_sheet('Backtest')
    add_dataframe_to_sheet(
        ws_bt, tables['backtest_results'],
        currency_cols=['prediction', 'actual'],
        pct_cols=['error_pct']
    )
    summary_row = len(tables['backtest_results']) + 3
    add_dataframe_to_sheet(
        ws_bt, tables['backtest_summary'], start_row=summary_row,
        number_cols=['mean_absolute_error_pct', 'bias_pct', 'avg_accuracy_within_30_days', 'hit_rate_within_10pct']
    )

    add_dataframe_to_sheet(
        wb.create_sheet('Peak_Decline'), tables['peak_decline'],
        currency_cols=['peak_raw_value', 'peak_weighted_value', 'actual_closing_raw_value',
                       'actual_closing_weighted_value'],
        number_cols=['decline_pct_raw', 'decline_pct_weighted']
    )
    add_dataframe_to_sheet(
        wb.create_sheet('Trajectories'), tables['trajectories'],
        currency_cols=['raw_pipeline', 'weighted_pipeline']
    )

    ws_raw = wb.create_sheet('Raw_Overview')
    row = 1
    for name in ('raw_pipeline_history', 'raw_stage_breakdown', 'raw_month_totals'):
        add_dataframe_to_sheet(ws_raw, tables[name], start_row=row, currency_cols=['total_value'])
        row += len(tables[name]) + 2

    add_dataframe_to_sheet(
        wb.create_sheet('Stage_History'), tables['stage_history'],
        currency_cols=['total_amount']
    )

    wb.save(path)
    return path


def export_results(analyzer, export_dir):
    """Write every engine table as CSV plus one styled workbook; returns the paths written."""
    os.makedirs(export_dir, exist_ok=True)
    tables = build_tables(analyzer)

    written = []
    for name in ('forecast_summary', 'growth_rates', 'backtest_results', 'peak_decline', 'similar_months',
                 'stage_history', 'raw_pipeline_history'):
        path = os.path.join(export_dir, f'{name}.csv')
        tables[name].to_csv(path, index=False)
        written.append(path)

    written.append(write_workbook(tables, os.path.join(export_dir, 'trajectory_forecast.xlsx')))
    logger.info(f"Exported {len(written)} files to {export_dir}")
    return written
