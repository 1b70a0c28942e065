import json
import logging
import os
from types import MappingProxyType

# --- Logging setup ---

def setup_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

# --- Paths ---

def _project_root():
    d = os.path.dirname(os.path.abspath(__file__))
    if os.path.basename(d) == 'trajectory_forecast':
        d = os.path.dirname(d)
    return d

_ROOT = _project_root()
DATA_PATH = os.path.join(_ROOT, 'data', 'pipeline_snapshots.csv')
EXPORT_DIR = os.path.join(_ROOT, 'exports')

# --- Input columns ---

COLUMNS = MappingProxyType({
    'snapshot': 'snapShotTime',
    'closing_date': 'date',
    'amount': 'totalAmount',
    'stage': 'stage',
})

# --- Analysis window ---

ANALYSIS_YEAR = 2025

# Confidence that a deal in this stage funds in its closing month.
STAGE_WEIGHTS = MappingProxyType({
    'FUNDED': 1.0,
    'READY_FOR_FUNDING': 0.95,
    'CONDITION_FULFILLMENT': 0.75,
    'APPROVED': 0.60,
})

MIN_DAYS_BEFORE_CLOSE = -5
MAX_DAYS_BEFORE_CLOSE = 89
HORIZON_DAYS = MAX_DAYS_BEFORE_CLOSE + 1

CLOSING_TOLERANCE_DAYS = 5

# --- Growth-rate model ---

MAX_GAP_DAYS = 3
GROWTH_OUTLIER_LIMIT = 0.5
SMOOTHING_RADIUS = 2

# --- Similarity ---

SIMILARITY_CHECKPOINTS = (85, 75, 60, 45, 30, 15)
CHECKPOINT_TOLERANCE = 3
SIMILARITY_CUTOFF_MONTH = f'{ANALYSIS_YEAR}-01'
TRAJECTORY_SCORE_WEIGHT = 0.7
FORECAST_SCORE_WEIGHT = 0.3
SIMILAR_MONTHS_LIMIT = 3

# --- Backtest ---

BACKTEST_START_MONTH = f'{ANALYSIS_YEAR}-04'
BACKTEST_TRAINING_MONTHS = 3
BACKTEST_CHECKPOINTS = (60, 45, 30, 15, 7, 1)
ACCURACY_HORIZON_DAYS = 30
HIT_RATE_THRESHOLD = 0.10

# --- Goal seek ---

GOAL_CLOSING_WEIGHT = 0.6
GOAL_PEAK_WEIGHT = 0.3
GOAL_TIMING_WEIGHT = 0.1
GOAL_SEEK_MATCH_LIMIT = 2
DEFAULT_PEAK_OVER_GOAL = 1.15
DEFAULT_DAYS_AT_PEAK = 22


def export_assumptions(path, analysis_year=ANALYSIS_YEAR, stage_weights=STAGE_WEIGHTS):
    config = {
        'ANALYSIS_YEAR': analysis_year,
        'STAGE_WEIGHTS': dict(stage_weights),
        'MIN_DAYS_BEFORE_CLOSE': MIN_DAYS_BEFORE_CLOSE,
        'MAX_DAYS_BEFORE_CLOSE': MAX_DAYS_BEFORE_CLOSE,
        'CLOSING_TOLERANCE_DAYS': CLOSING_TOLERANCE_DAYS,
        'MAX_GAP_DAYS': MAX_GAP_DAYS,
        'GROWTH_OUTLIER_LIMIT': GROWTH_OUTLIER_LIMIT,
        'SMOOTHING_RADIUS': SMOOTHING_RADIUS,
        'SIMILARITY_CHECKPOINTS': list(SIMILARITY_CHECKPOINTS),
        'CHECKPOINT_TOLERANCE': CHECKPOINT_TOLERANCE,
        'SIMILARITY_CUTOFF_MONTH': f'{analysis_year}-01',
        'TRAJECTORY_SCORE_WEIGHT': TRAJECTORY_SCORE_WEIGHT,
        'FORECAST_SCORE_WEIGHT': FORECAST_SCORE_WEIGHT,
        'BACKTEST_START_MONTH': f'{analysis_year}-04',
        'BACKTEST_TRAINING_MONTHS': BACKTEST_TRAINING_MONTHS,
        'BACKTEST_CHECKPOINTS': list(BACKTEST_CHECKPOINTS),
        'GOAL_CLOSING_WEIGHT': GOAL_CLOSING_WEIGHT,
        'GOAL_PEAK_WEIGHT': GOAL_PEAK_WEIGHT,
        'GOAL_TIMING_WEIGHT': GOAL_TIMING_WEIGHT,
    }
    with open(path, 'w') as f:
        json.dump(config, f, indent=4)
    return config
