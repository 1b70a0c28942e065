"""
Command-line entry point: load snapshots, forecast open months, export tables.
"""
import argparse
import logging
import os
import sys
from datetime import datetime

from trajectory_forecast import config
from trajectory_forecast.analyzer import TrajectoryAnalyzer
from trajectory_forecast.backtest import calculate_accuracy_metrics
from trajectory_forecast.export import export_results
from trajectory_forecast.mock_data import MOCK_AS_OF, mock_csv_text

logger = logging.getLogger(__name__)


def format_currency_m(value):
    return f"${value / 1e6:.2f}M"


def load_csv_text(path):
    with open(path, encoding='utf-8-sig') as f:
        return f.read()


def log_summary(analyzer):
    raw = analyzer.get_raw_data_summary()
    if raw is not None:
        latest = raw['latest_snapshot']
        logger.info(
            f"Latest snapshot {latest['date']}: {format_currency_m(latest['total_value'])} raw "
            f"across {latest['data_points']:,} rows, {len(raw['upcoming_months'])} upcoming months"
        )

    for result in analyzer.get_forecast():
        if result.is_recommended:
            analogs = ', '.join(c.historical_month for c in result.similar_months) or 'none'
            logger.info(
                f"{result.month}: {format_currency_m(result.current_weighted_value)} weighted, "
                f"{result.days_to_close} days out -> {format_currency_m(result.forecast)} "
                f"({result.total_projected_growth:+.1%}); similar: {analogs}"
            )
        else:
            logger.info(f"{result.month}: {result.days_to_close} days out, not recommended")

    metrics = calculate_accuracy_metrics(analyzer.get_backtest_results())
    if metrics['num_predictions']:
        logger.info(
            f"Backtest: {metrics['num_predictions']} predictions, "
            f"MAE {metrics['mean_absolute_error_pct']:.1f}%, bias {metrics['bias_pct']:+.1f}%, "
            f"hit rate {metrics['hit_rate_within_10pct']:.0f}%"
        )
    else:
        logger.info("Backtest: no eligible months")


def parse_as_of(text):
    return datetime.strptime(text, '%Y-%m-%d')


def build_parser():
    parser = argparse.ArgumentParser(
        description='Forecast month-end closing pipeline from daily pipeline snapshots'
    )
    parser.add_argument('--data', '-d', default=config.DATA_PATH, help='Snapshot CSV path')
    parser.add_argument('--export-dir', '-o', default=config.EXPORT_DIR, help='Directory for CSV / Excel output')
    parser.add_argument('--as-of', type=parse_as_of, default=None, help="Treat this date (YYYY-MM-DD) as today")
    parser.add_argument('--year', type=int, default=config.ANALYSIS_YEAR, help='Closing year to analyse')
    parser.add_argument('--mock', action='store_true', help='Use generated mock snapshots instead of --data')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config.setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    as_of = args.as_of
    if args.mock:
        as_of = as_of or MOCK_AS_OF
        csv_text = mock_csv_text(year=args.year, end=as_of)
    else:
        if not os.path.exists(args.data):
            logger.error(f"Snapshot file not found: {args.data}")
            return 1
        csv_text = load_csv_text(args.data)

    analyzer = TrajectoryAnalyzer(analysis_year=args.year, as_of=as_of).load_data(csv_text)
    if not analyzer.has_data():
        logger.error("No usable snapshot rows; nothing to forecast")
        return 1

    log_summary(analyzer)

    export_results(analyzer, args.export_dir)
    config.export_assumptions(
        os.path.join(args.export_dir, 'assumptions.json'), analyzer.analysis_year, analyzer.stage_weights
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
