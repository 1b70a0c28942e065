"""
Mock pipeline snapshots for demos and end-to-end tests.

- ~20 deals per closing month, scaled by seasonality
- Each deal enters the pipeline 5-85 days before its closing date and moves
  APPROVED -> CONDITION_FULFILLMENT -> READY_FOR_FUNDING -> FUNDED
- Some deals fall out before closing, which gives months a peak and a decline
- One snapshot per day at 06:00 UTC, output in the live export's column layout
"""
import logging
import os
from calendar import monthrange
from datetime import date, datetime, timedelta

import numpy as np
import pandas as pd

from trajectory_forecast import config

logger = logging.getLogger(__name__)

# ==========================================
# CONFIGURATION
# ==========================================

DEALS_PER_MONTH = 20
AMOUNT_MIN = 25000
AMOUNT_MAX = 250000
ENTRY_DAYS = (5, 85)
LOSS_RATE = 0.15
SNAPSHOT_HOUR = 6

# Days after month end that funded deals are still reported.
FUNDED_TAIL_DAYS = 5

# The export only carries deals inside the forecast window of their closing month.
MAX_LEAD_DAYS = config.MAX_DAYS_BEFORE_CLOSE - 1

# Default "today" for mock runs: leaves Sep-Dec open and Jan-Aug closed.
MOCK_AS_OF = datetime(2025, 9, 15)

SEASONALITY = {
    1: 0.75, 2: 0.85, 3: 1.00, 4: 1.00, 5: 1.05, 6: 1.15,
    7: 0.90, 8: 0.90, 9: 1.05, 10: 1.10, 11: 1.20, 12: 1.30,
}


def stage_for(days_left):
    if days_left <= 0:
        return 'FUNDED'
    if days_left <= 7:
        return 'READY_FOR_FUNDING'
    if days_left <= 30:
        return 'CONDITION_FULFILLMENT'
    return 'APPROVED'


def generate_deals(rng, year):
    deals = []
    for month in range(1, 13):
        last_day = monthrange(year, month)[1]
        count = max(1, int(round(DEALS_PER_MONTH * SEASONALITY[month] * rng.uniform(0.85, 1.15))))

        for _ in range(count):
            closing = date(year, month, int(rng.integers(1, last_day + 1)))
            entry = closing - timedelta(days=int(rng.integers(ENTRY_DAYS[0], ENTRY_DAYS[1] + 1)))
            entry = max(entry, date(year, month, last_day) - timedelta(days=MAX_LEAD_DAYS))
            amount = round(float(rng.uniform(AMOUNT_MIN, AMOUNT_MAX)), -2)

            lost_on = None
            if rng.random() < LOSS_RATE:
                span = max(1, (closing - entry).days)
                lost_on = entry + timedelta(days=int(rng.integers(1, span + 1)))

            deals.append({
                'closing': closing,
                'entry': entry,
                'amount': amount,
                'lost_on': lost_on,
                'last_reported': date(year, month, last_day) + timedelta(days=FUNDED_TAIL_DAYS),
            })
    return deals


def generate_mock_snapshots(year=config.ANALYSIS_YEAR, end=None, seed=42):
    """
    Daily snapshots from Oct 1 of the prior year through ``end`` (default
    Dec 31 of ``year``). Returns a DataFrame with the CSV input columns.
    """
    rng = np.random.default_rng(seed)
    deals = generate_deals(rng, year)

    start = date(year - 1, 10, 1)
    last = end.date() if isinstance(end, datetime) else (end or date(year, 12, 31))

    cols = config.COLUMNS
    rows = []
    day = start
    while day <= last:
        stamp = f"{day:%Y-%m-%d}T{SNAPSHOT_HOUR:02d}:00:00Z"
        for deal in deals:
            if day < deal['entry'] or day > deal['last_reported']:
                continue
            if deal['lost_on'] is not None and day >= deal['lost_on']:
                continue
            rows.append({
                cols['snapshot']: stamp,
                cols['closing_date']: deal['closing'].strftime('%m/%d/%Y'),
                cols['amount']: f"${deal['amount']:,.2f}",
                cols['stage']: stage_for((deal['closing'] - day).days),
            })
        day += timedelta(days=1)

    df = pd.DataFrame(rows, columns=[cols['snapshot'], cols['closing_date'], cols['amount'], cols['stage']])
    logger.info(f"Generated {len(df):,} mock rows for {len(deals)} deals ({start} to {last})")
    return df


def mock_csv_text(year=config.ANALYSIS_YEAR, end=None, seed=42):
    return generate_mock_snapshots(year, end, seed).to_csv(index=False)


def write_mock_data(path=config.DATA_PATH, year=config.ANALYSIS_YEAR, end=None, seed=42):
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    df = generate_mock_snapshots(year, end, seed)
    df.to_csv(path, index=False)
    logger.info(f"Saved mock snapshots to {path}")
    return path
