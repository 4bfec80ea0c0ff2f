"""
High-level orchestration for the forecasting workflow.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.base import clone

from .calendar import make_future_timeseries
from .data import load_series_data
from .features import FeatureBuilder, default_feature_config
from .frequency import PeriodLike, get_trend, parse_period, select_frequency
from .models import ModelArtifact, ModelSelector, default_candidates
from .summary import TimeSeriesSummary


def time_series_split(
    df: pd.DataFrame,
    date_column: str,
    assess: Union[int, str],
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split ``df`` into a training window and a trailing assessment window.

    ``assess`` is either a row count or a period string; with a period string
    the assessment window holds every row later than ``last - period``.
    """
    frame = df.sort_values(date_column, kind="stable").reset_index(drop=True)
    dates = pd.to_datetime(frame[date_column])

    if isinstance(assess, str):
        cutoff = dates.iloc[-1] - parse_period(assess).to_offset()
        in_assessment = (dates > cutoff).to_numpy()
    else:
        count = int(assess)
        if count <= 0:
            raise ValueError("assess must be a positive integer or a period string.")
        in_assessment = np.arange(len(frame)) >= len(frame) - count

    train = frame.loc[~in_assessment].reset_index(drop=True)
    test = frame.loc[in_assessment].reset_index(drop=True)
    if train.empty or test.empty:
        raise ValueError(
            f"Assessment window {assess!r} leaves {len(train)} training and {len(test)} assessment rows."
        )
    return train, test


@dataclass
class ForecastResult:
    forecast_frame: pd.DataFrame
    calibration: pd.DataFrame
    trend_summary: pd.DataFrame
    diagnostics: Dict[str, ModelArtifact]
    summary: TimeSeriesSummary
    frequency: int
    trend: int

    def save(self, output_dir: Path) -> Dict[str, Path]:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        paths = {
            "forecast": output_dir / "forecast.csv",
            "calibration": output_dir / "calibration.csv",
            "summary": output_dir / "forecast_summary.csv",
        }
        self.forecast_frame.to_csv(paths["forecast"], index=False)
        self.calibration.to_csv(paths["calibration"], index=False)
        self.trend_summary.to_csv(paths["summary"], index=False)
        return paths


class ForecastPipeline:
    """
    End-to-end pipeline that reads a time-indexed table, guesses its frequency
    and trend, calibrates candidate models on a hold-out window, and forecasts
    past the last observation with the best-calibrated model.
    """

    def __init__(
        self,
        data_path: Path,
        date_column: str = "date",
        value_column: str = "value",
        horizon: Union[int, str] = "3 months",
        assess: Union[int, str] = "3 months",
        frequency: PeriodLike = "auto",
        trend: PeriodLike = "auto",
        output_dir: Optional[Path] = None,
        random_state: int = 42,
        mode: str = "fast",
        prediction_margin: float = 0.02,
        inspect_weekdays: bool = True,
        verbose: bool = True,
    ) -> None:
        self.data_path = Path(data_path)
        self.date_column = date_column
        self.value_column = value_column
        self.horizon = horizon
        self.assess = assess
        self.frequency = frequency
        self.trend = trend
        self.output_dir = Path(output_dir) if output_dir else None
        self.random_state = random_state
        self.mode = mode
        self.prediction_margin = prediction_margin
        self.inspect_weekdays = inspect_weekdays
        self.verbose = verbose

        if self.mode not in {"robust", "fast"}:
            raise ValueError("mode must be either 'robust' or 'fast'")
        if isinstance(self.horizon, str):
            parse_period(self.horizon)
        elif int(self.horizon) <= 0:
            raise ValueError("horizon must be a positive integer or a period string.")
        if self.prediction_margin < 0:
            raise ValueError("prediction_margin must be non-negative.")

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[pipeline] {message}", flush=True)

    def run(self) -> ForecastResult:
        self._log(f"Loading data from {self.data_path} ...")
        bundle = load_series_data(self.data_path, self.date_column, [self.value_column])
        frame = bundle.frame
        summary = bundle.summary
        if summary.scale is None:
            raise ValueError("At least two distinct timestamps are required to forecast.")

        index = bundle.index
        frequency, cycle = select_frequency(index, period=self.frequency, message=self.verbose)
        frequency = int(frequency)
        trend = int(get_trend(index, period=self.trend, message=self.verbose))
        self._log(f"Detected '{summary.scale}' scale, frequency {frequency}, trend {trend}.")

        train, test = time_series_split(frame, self.date_column, self.assess)
        self._log(f"Training on {len(train)} rows, assessing on {len(test)} rows.")

        builder = FeatureBuilder(
            default_feature_config(
                target_column=self.value_column,
                date_column=self.date_column,
                frequency=frequency,
                trend=trend,
                history_length=len(train),
                cycle_seconds=cycle.seconds() if cycle is not None else None,
            )
        )
        X, y = builder.build_training_matrix(train)
        n_samples = len(X)
        if n_samples < 3:
            raise ValueError(
                f"Not enough samples ({n_samples}) to train models for '{self.value_column}'. "
                "Consider shortening the assessment window or supplying more history."
            )

        self._log("Selecting candidate models ...")
        selector = ModelSelector(
            candidates=default_candidates(random_state=self.random_state, mode=self.mode),
            scoring="neg_mean_absolute_error",
            n_splits=self._determine_cv_splits(n_samples),
            random_state=self.random_state,
        )
        selector.fit(X, y, feature_names=X.columns)

        self._log("Calibrating models on the assessment window ...")
        calibration = self._calibrate(builder, selector, train, test)
        best_artifact = selector.best_artifact_
        best_name = best_artifact.name
        diagnostics = {artifact.name: artifact for artifact in selector.evaluated_}
        self._log(f"Selected model '{best_name}'.")

        self._log("Refitting on the full history ...")
        refit_builder = FeatureBuilder(builder.config)
        X_full, y_full = refit_builder.build_training_matrix(frame)
        estimator = clone(best_artifact.estimator).fit(X_full, y_full)

        future_index = make_future_timeseries(
            index,
            length_out=self.horizon,
            inspect_weekdays=self.inspect_weekdays,
        )
        forecast_df = refit_builder.forecast(frame, estimator, future_index)
        forecast_df = self._constrain_forecast(forecast_df, frame)
        forecast_df.insert(1, "model", best_name)

        trend_summary = self._summarise_trends(forecast_df, calibration)

        result = ForecastResult(
            forecast_frame=forecast_df,
            calibration=calibration,
            trend_summary=trend_summary,
            diagnostics=diagnostics,
            summary=summary,
            frequency=frequency,
            trend=trend,
        )

        if self.output_dir:
            result.save(self.output_dir)
            self._log(f"Results written to {self.output_dir.resolve()}")

        return result

    # Internal ------------------------------------------------------------------------

    def _calibrate(
        self,
        builder: FeatureBuilder,
        selector: ModelSelector,
        train: pd.DataFrame,
        test: pd.DataFrame,
    ) -> pd.DataFrame:
        test_index = pd.DatetimeIndex(test[self.date_column])
        column = f"{self.value_column}_prediction"

        def forecast_assessment(estimator) -> pd.Series:
            return builder.forecast(train, estimator, test_index)[column]

        return selector.calibrate(forecast_assessment, test[self.value_column], y_train=train[self.value_column])

    def _determine_cv_splits(self, n_samples: int) -> int:
        max_splits = 2 if self.mode == "fast" else 4
        splits = min(max_splits, n_samples - 1)
        return max(splits, 2)

    def _constrain_forecast(self, forecast_df: pd.DataFrame, history_df: pd.DataFrame) -> pd.DataFrame:
        if self.prediction_margin == 0 or forecast_df.empty:
            return forecast_df

        recent = history_df[self.value_column].dropna()
        if recent.empty:
            return forecast_df

        margin = self.prediction_margin
        span = float(recent.max() - recent.min())
        lower = float(recent.min() - abs(recent.min()) * margin - span * margin)
        upper = float(recent.max() + abs(recent.max()) * margin + span * margin)
        column = f"{self.value_column}_prediction"
        forecast_df[column] = forecast_df[column].clip(lower=lower, upper=upper)

        self._log(f"Applied bounds for '{self.value_column}' within [{lower:,.2f}, {upper:,.2f}].")
        return forecast_df

    def _summarise_trends(self, forecast_df: pd.DataFrame, calibration: pd.DataFrame) -> pd.DataFrame:
        column = f"{self.value_column}_prediction"
        series = forecast_df[column].astype(float)
        if series.empty:
            return pd.DataFrame()

        start_value = float(series.iloc[0])
        end_value = float(series.iloc[-1])
        absolute_change = end_value - start_value
        percent_change = (absolute_change / start_value) if start_value != 0 else np.nan

        if len(series) > 1:
            horizon_index = np.arange(1, len(series) + 1)
            slope, _ = np.polyfit(horizon_index, series, deg=1)
        else:
            slope = 0.0

        best = calibration.iloc[0]
        return pd.DataFrame(
            [
                {
                    "target": self.value_column,
                    "model": best["model"],
                    "starting_value": start_value,
                    "ending_value": end_value,
                    "absolute_change": absolute_change,
                    "percent_change": percent_change,
                    "estimated_slope_per_step": float(slope),
                    "forecast_volatility": float(np.std(series)),
                    "trend_direction": self._classify_trend(percent_change),
                    "calibration_mae": float(best["mae"]),
                }
            ]
        )

    @staticmethod
    def _classify_trend(percent_change: float) -> str:
        if not np.isfinite(percent_change):
            return "undetermined"
        threshold = 0.02  # 2% change over the horizon counts as material.
        if percent_change > threshold:
            return "upward"
        if percent_change < -threshold:
            return "downward"
        return "stable"
