"""
Command-line entry point for inspecting a series and running the forecasting pipeline.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Union

from .config import Settings
from .data import load_series_data
from .frequency import get_frequency, get_trend
from .pipeline import ForecastPipeline
from .template import get_time_scale_template, load_time_scale_template


def _count_or_period(value: str) -> Union[int, str]:
    return int(value) if value.strip().isdigit() else value


def parse_args(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    settings = settings or Settings()
    parser = argparse.ArgumentParser(
        description="Guess the frequency and trend of a time series and forecast it past its last observation."
    )
    parser.add_argument("--data", type=Path, required=True, help="Path to the time-indexed CSV.")
    parser.add_argument("--date-column", default="date", help="Name of the timestamp column.")
    parser.add_argument("--value-column", default="value", help="Name of the column to forecast.")
    parser.add_argument(
        "--horizon",
        type=_count_or_period,
        default="3 months",
        help="Forecast horizon as a number of steps or a period such as '3 months'.",
    )
    parser.add_argument(
        "--assess",
        type=_count_or_period,
        default="3 months",
        help="Trailing window held out for calibration, as a row count or a period.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=settings.output_dir,
        help="Directory for saving forecast artefacts.",
    )
    parser.add_argument(
        "--mode",
        choices=("robust", "fast"),
        default=settings.mode,
        help="Model search strategy. Use 'fast' for quicker, lighter-weight runs.",
    )
    parser.add_argument(
        "--template",
        type=Path,
        default=settings.template_path,
        help="CSV with time_scale, frequency and trend columns replacing the default template.",
    )
    parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Print the index summary, frequency and trend without modelling.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress verbose pipeline logging.",
    )
    return parser.parse_args(argv)


def print_summary(args: argparse.Namespace) -> None:
    bundle = load_series_data(args.data, args.date_column, [args.value_column])
    frequency = get_frequency(bundle.index, message=not args.quiet)
    trend = get_trend(bundle.index, message=not args.quiet)

    print("\n=== Time Series Summary ===")
    print(bundle.summary.to_frame().T.to_string(header=False))
    print(f"\nfrequency: {frequency}")
    print(f"trend:     {trend}")
    print("\n=== Time Scale Template ===")
    print(get_time_scale_template().to_string(index=False))


def main(argv: Optional[List[str]] = None) -> None:
    settings = Settings()
    settings.validate()
    args = parse_args(argv, settings)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.template:
        load_time_scale_template(args.template)

    if args.summary_only:
        print_summary(args)
        return

    pipeline = ForecastPipeline(
        data_path=args.data,
        date_column=args.date_column,
        value_column=args.value_column,
        horizon=args.horizon,
        assess=args.assess,
        output_dir=args.output_dir,
        random_state=settings.random_state,
        mode=args.mode,
        verbose=not args.quiet,
    )
    result = pipeline.run()

    calibration = result.calibration.copy()
    for column in ("mae", "mape", "mase", "smape", "rmse", "rsq", "cv_mae"):
        if column in calibration.columns:
            calibration[column] = calibration[column].apply(lambda x: f"{x:,.3f}")

    trend_df = result.trend_summary.copy()
    if not trend_df.empty:
        trend_df["percent_change"] = trend_df["percent_change"].apply(lambda x: f"{x * 100:.2f}%")

    print("\n=== Calibration (assessment window) ===")
    print(calibration.to_string(index=False))
    print("\n=== Forecast Trend Summary ===")
    print(trend_df.to_string(index=False))
    print("\nForecast data saved to:", (args.output_dir / "forecast.csv").resolve())


if __name__ == "__main__":
    main()
