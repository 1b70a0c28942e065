from datetime import datetime

from trajectory_forecast.parser import parse_records
from trajectory_forecast.raw_data import summarize_raw_data
from trajectory_forecast.stage_history import open_month_stage_history, stage_history_frame


def test_raw_summary(sample_csv):
    summary = summarize_raw_data(sample_csv, as_of=datetime(2025, 2, 15))

    assert summary['latest_snapshot'] == {'date': '2025-02-01', 'total_value': 1200.0, 'data_points': 3}
    assert summary['pipeline_history']['total_value'].tolist() == [1500.0, 1200.0]
    assert summary['overall_stage_breakdown'].to_dict('records') == [
        {'stage': 'APPROVED', 'total_value': 900.0},
        {'stage': 'CONDITION_FULFILLMENT', 'total_value': 300.0},
    ]
    assert summary['upcoming_month_totals'].to_dict('records') == [
        {'closing_month': '2025-02', 'total_value': 700.0},
        {'closing_month': '2025-03', 'total_value': 500.0},
    ]

    assert [m['month'] for m in summary['historical_months']] == ['2025-01']
    january = summary['historical_months'][0]
    assert january['total_value'] == 1000.0
    assert january['data_points'] == 1
    assert [m['month'] for m in summary['upcoming_months']] == ['2025-02', '2025-03']
    assert summary['dropped_rows'] == 0


def test_raw_summary_keeps_other_years():
    csv_text = 'snapShotTime,date,totalAmount,stage\n2024-05-01T10:00:00Z,12/20/2024,100,FUNDED\n'
    summary = summarize_raw_data(csv_text, as_of=datetime(2025, 2, 15))
    assert [m['month'] for m in summary['historical_months']] == ['2024-12']


def test_raw_summary_without_rows():
    assert summarize_raw_data('snapShotTime,date,totalAmount,stage\n') is None


def test_open_month_stage_history(sample_csv):
    observations, _ = parse_records(sample_csv)
    history = open_month_stage_history(observations, datetime(2025, 2, 15))

    assert [h['closing_month'] for h in history] == ['2025-02', '2025-03']
    february, march = history
    assert february['analysis_period'] == {'start_date': '2025-01-30', 'end_date': '2025-02-01'}
    assert february['daily_snapshots']['total_amount'].tolist() == [500.0, 700.0]
    assert march['daily_snapshots'][['stage', 'total_amount']].to_dict('records') == [
        {'stage': 'APPROVED', 'total_amount': 200.0},
        {'stage': 'CONDITION_FULFILLMENT', 'total_amount': 300.0},
    ]

    frame = stage_history_frame(history)
    assert list(frame.columns) == ['closing_month', 'date', 'stage', 'total_amount']
    assert len(frame) == 4


def test_stage_history_empty():
    assert open_month_stage_history([], datetime(2025, 2, 15)) == []
    assert stage_history_frame([]).empty
