"""
Record parsing: raw CSV rows -> validated Observations.

A row is either fully parsed or dropped; malformed rows never raise. The
checks run in a fixed order (fields present, snapshot instant, closing date,
day window, amount, stage weight) and the first failure drops the row.
"""
import io
import logging
import math
from datetime import datetime

import pandas as pd

from trajectory_forecast import config
from trajectory_forecast.dates import days_before_close, month_end, month_key, to_utc_naive
from trajectory_forecast.models import Observation

logger = logging.getLogger(__name__)

CLOSING_DATE_FORMATS = ('%m/%d/%Y', '%Y-%m-%d')
ROW_ERRORS = (ValueError, TypeError, OverflowError, KeyError)

# pandas resolves these against the wall clock.
RELATIVE_TIMES = frozenset({'now', 'today', 'tomorrow', 'yesterday'})


def read_rows(csv_text):
    """
    Decode CSV text into (rows, bad_line_count).

    Rows are dicts with every cell kept as text. One record per physical
    line: lines with an unbalanced quote or more fields than the header are
    skipped and counted, and never swallow the lines after them.
    """
    lines = [line for line in (csv_text or '').splitlines() if line.strip()]
    if not lines:
        return [], 0
    header, data = lines[0], lines[1:]

    balanced = [line for line in data if line.count('"') % 2 == 0]
    unbalanced = len(data) - len(balanced)
    if unbalanced:
        logger.warning(f"Skipped {unbalanced:,} lines with unbalanced quotes")

    bad_lines = []

    def _skip(line):
        bad_lines.append(line)
        return None

    df = pd.read_csv(
        io.StringIO('\n'.join([header] + balanced)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine='python',
        on_bad_lines=_skip,
    )
    missing = set(config.COLUMNS.values()) - set(df.columns)
    if missing:
        logger.warning(f"Missing required columns: {sorted(missing)}. All rows will be dropped.")

    unaccounted = len(balanced) - len(df) - len(bad_lines)
    if unaccounted > 0:
        logger.warning(f"{unaccounted:,} lines could not be read as records")
    else:
        unaccounted = 0

    return df.to_dict('records'), unbalanced + len(bad_lines) + unaccounted


def parse_snapshot(text):
    text = text.strip()
    if text.lower() in RELATIVE_TIMES:
        raise ValueError(f"Relative snapshot time not allowed: {text!r}")
    ts = pd.Timestamp(text)
    if pd.isna(ts):
        raise ValueError(f"Unparseable snapshot time: {text!r}")
    return to_utc_naive(ts)


def parse_closing_date(text):
    text = text.strip()
    for fmt in CLOSING_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unparseable closing date: {text!r}")


def parse_amount(text):
    return float(text.replace('$', '').replace(',', '').strip())


def parse_row(row, stage_weights=config.STAGE_WEIGHTS, analysis_year=config.ANALYSIS_YEAR, enforce_window=True):
    """
    Parse one CSV row into an Observation, or return None if it is invalid.

    With ``enforce_window`` off the analysis-year and day-window checks are
    skipped (used by the raw overview, which looks at every closing month).
    """
    try:
        fields = [row.get(config.COLUMNS[k]) for k in ('snapshot', 'closing_date', 'amount', 'stage')]
        if not all(isinstance(f, str) and f.strip() for f in fields):
            return None
        snapshot_text, closing_text, amount_text, stage_text = fields

        snapshot = parse_snapshot(snapshot_text)
        closing = parse_closing_date(closing_text)

        if enforce_window and closing.year != analysis_year:
            return None

        days = days_before_close(month_end(closing.year, closing.month), snapshot)
        if enforce_window and not (config.MIN_DAYS_BEFORE_CLOSE <= days <= config.MAX_DAYS_BEFORE_CLOSE):
            return None

        amount = parse_amount(amount_text)
        if not math.isfinite(amount):
            return None

        stage = stage_text.strip()
        weight = stage_weights.get(stage, 0.0)
    except ROW_ERRORS:
        return None

    return Observation(
        snapshot_date=snapshot,
        closing_month=closing,
        month_key=month_key(closing),
        days_before_close=days,
        raw_amount=amount,
        stage=stage,
        weighted_amount=amount * weight,
    )


def parse_records(csv_text, stage_weights=config.STAGE_WEIGHTS, analysis_year=config.ANALYSIS_YEAR, enforce_window=True):
    """Returns (observations, dropped_count)."""
    rows, bad_lines = read_rows(csv_text)
    observations = []
    for row in rows:
        obs = parse_row(row, stage_weights, analysis_year, enforce_window)
        if obs is not None:
            observations.append(obs)

    dropped = len(rows) - len(observations) + bad_lines
    if dropped:
        logger.info(f"Dropped {dropped:,} of {len(rows) + bad_lines:,} rows during parsing")
    return observations, dropped


def observations_frame(observations):
    return pd.DataFrame({
        'snapshot_date': pd.to_datetime([o.snapshot_date for o in observations]),
        'month_key': [o.month_key for o in observations],
        'stage': [o.stage for o in observations],
        'raw': [o.raw_amount for o in observations],
        'weighted': [o.weighted_amount for o in observations],
    })
