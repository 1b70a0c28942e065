from datetime import datetime

from helpers import make_csv, make_trajectory

from trajectory_forecast.aggregation import aggregate_by_month, classify_months, closing_values
from trajectory_forecast.parser import parse_records


def _series(rows):
    observations, _ = parse_records(make_csv(rows))
    return aggregate_by_month(observations)


def test_last_snapshot_of_the_day_wins():
    series = _series([
        ('2025-01-10T08:00:00Z', '01/20/2025', '$100.00', 'FUNDED'),
        ('2025-01-10T18:00:00Z', '01/20/2025', '$200.00', 'FUNDED'),
        ('2025-01-10T18:00:00Z', '01/25/2025', '$50.00', 'FUNDED'),
    ])
    trajectory = series['2025-01']
    assert len(trajectory) == 1
    assert trajectory[0].raw_pipeline == 250.0
    assert trajectory[0].snapshot_date == datetime(2025, 1, 10, 18)


def test_trajectory_is_chronological_and_split_by_month():
    series = _series([
        ('2025-01-12T08:00:00Z', '01/20/2025', '$300.00', 'APPROVED'),
        ('2025-01-10T08:00:00Z', '01/20/2025', '$100.00', 'APPROVED'),
        ('2025-01-11T08:00:00Z', '02/20/2025', '$100.00', 'APPROVED'),
    ])
    assert sorted(series) == ['2025-01', '2025-02']
    days = [p.days_before_close for p in series['2025-01']]
    assert days == sorted(days, reverse=True)
    assert [p.weighted_pipeline for p in series['2025-01']] == [60.0, 180.0]


def test_closing_values_use_point_nearest_day_zero():
    series = {
        '2025-01': make_trajectory('2025-01', [(10, 100.0), (2, 150.0), (-1, 140.0)]),
        '2025-02': make_trajectory('2025-02', [(30, 100.0), (6, 120.0)]),
    }
    actuals = closing_values(series)
    assert actuals['2025-01'].weighted == 140.0
    assert '2025-02' not in actuals


def test_classify_months():
    series = {
        '2025-01': make_trajectory('2025-01', [(10, 100.0), (0, 150.0)]),
        '2025-02': make_trajectory('2025-02', [(30, 100.0), (20, 120.0)]),
        '2025-03': make_trajectory('2025-03', [(40, 100.0)]),
        '2025-04': make_trajectory('2025-04', [(5, 100.0), (0, 0.0)]),
    }
    historical, current = classify_months(series, closing_values(series), datetime(2025, 5, 15))
    assert historical == ['2025-01']
    assert current == ['2025-02', '2025-03', '2025-04']
