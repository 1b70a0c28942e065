from helpers import make_csv

from trajectory_forecast.parser import parse_records, parse_row, read_rows


def _row(snapshot, closing='01/15/2025', amount='$1,000.00', stage='APPROVED'):
    return {'snapShotTime': snapshot, 'date': closing, 'totalAmount': amount, 'stage': stage}


def test_parse_row_weights_amount_by_stage():
    obs = parse_row(_row('2025-01-01T00:00:00Z'))
    assert obs is not None
    assert obs.month_key == '2025-01'
    assert obs.raw_amount == 1000.0
    assert obs.weighted_amount == 600.0
    assert obs.days_before_close == 31


def test_unknown_stage_is_kept_with_zero_weight():
    obs = parse_row(_row('2025-01-10T00:00:00Z', stage='PROSPECT'))
    assert obs is not None
    assert obs.weighted_amount == 0.0


def test_day_window_upper_boundary():
    # 89 days before the Jan 31 close is kept, 90 is not
    assert parse_row(_row('2024-11-04T00:00:00Z')).days_before_close == 89
    assert parse_row(_row('2024-11-03T12:00:00Z')) is None


def test_day_window_lower_boundary():
    assert parse_row(_row('2025-02-06T12:00:00Z')).days_before_close == -5
    assert parse_row(_row('2025-02-07T12:00:00Z')) is None


def test_month_end_snapshots():
    assert parse_row(_row('2025-01-31T12:00:00Z')).days_before_close == 1
    assert parse_row(_row('2025-02-01T00:00:00Z')).days_before_close == 0


def test_iso_closing_date_is_accepted():
    obs = parse_row(_row('2025-03-01T00:00:00Z', closing='2025-03-10'))
    assert obs.month_key == '2025-03'


def test_rows_outside_analysis_year_are_dropped():
    assert parse_row(_row('2024-12-01T00:00:00Z', closing='12/31/2024')) is None
    assert parse_row(_row('2024-12-01T00:00:00Z', closing='12/31/2024'), analysis_year=2024) is not None


def test_invalid_rows_are_dropped():
    assert parse_row(_row('not a time')) is None
    assert parse_row(_row('2025-01-01T00:00:00Z', closing='02/30/2025')) is None
    assert parse_row(_row('2025-01-01T00:00:00Z', amount='abc')) is None
    assert parse_row(_row('2025-01-01T00:00:00Z', amount='nan')) is None
    assert parse_row(_row('2025-01-01T00:00:00Z', amount='inf')) is None
    assert parse_row(_row('')) is None
    assert parse_row({'snapShotTime': '2025-01-01T00:00:00Z'}) is None


def test_custom_stage_weights():
    obs = parse_row(_row('2025-01-01T00:00:00Z'), stage_weights={'APPROVED': 0.5})
    assert obs.weighted_amount == 500.0


def test_parse_records_counts_dropped_rows():
    csv_text = make_csv([
        ('2025-01-10T08:00:00Z', '01/20/2025', '$100.00', 'FUNDED'),
        ('2025-01-10T08:00:00Z', '01/20/2025', 'n/a', 'FUNDED'),
        ('2025-01-10T08:00:00Z', '01/20/2024', '$100.00', 'FUNDED'),
    ])
    observations, dropped = parse_records(csv_text)
    assert len(observations) == 1
    assert dropped == 2


def test_missing_column_drops_everything():
    observations, dropped = parse_records('snapShotTime,date,stage\n2025-01-10T08:00:00Z,01/20/2025,FUNDED\n')
    assert observations == []
    assert dropped == 1


def test_lines_with_extra_fields_are_counted():
    csv_text = make_csv([('2025-01-10T08:00:00Z', '01/20/2025', '$100.00', 'FUNDED')])
    csv_text += '2025-01-10T08:00:00Z,01/20/2025,100,FUNDED,extra\n'
    rows, bad_lines = read_rows(csv_text)
    assert len(rows) == 1
    assert bad_lines == 1


def test_empty_input():
    assert parse_records('') == ([], 0)


def test_unterminated_quote_only_drops_its_own_line():
    valid = [(f'2025-01-1{i}T08:00:00Z', '01/20/2025', '$100.00', 'FUNDED') for i in range(3)]
    stray = '2025-01-10T08:00:00Z,01/20/2025,"$100.00,FUNDED'

    header, *lines = make_csv(valid).splitlines()
    for position in (0, len(lines)):
        body = lines[:position] + [stray] + lines[position:]
        observations, dropped = parse_records('\n'.join([header] + body) + '\n')
        assert len(observations) == 3
        assert dropped == 1


def test_blank_lines_are_not_counted():
    csv_text = make_csv([('2025-01-10T08:00:00Z', '01/20/2025', '$100.00', 'FUNDED')]) + '\n   \n'
    assert parse_records(csv_text)[1] == 0


def test_relative_snapshot_times_are_rejected():
    for word in ('now', 'today', ' Today ', 'yesterday'):
        assert parse_row(_row(word)) is None
