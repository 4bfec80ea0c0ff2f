"""
Feature engineering components for the forecasting pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .calendar import fourier_terms, numeric_signature


@dataclass
class FeatureBuilderConfig:
    target_column: str
    date_column: str
    lags: Sequence[int]
    rolling_windows: Sequence[int]
    fourier_period: Optional[float] = None
    fourier_order: int = 2


def default_feature_config(
    target_column: str,
    date_column: str,
    frequency: int,
    trend: int,
    history_length: int,
    cycle_seconds: Optional[float] = None,
    min_training_rows: int = 8,
) -> FeatureBuilderConfig:
    """
    Derive lags and rolling windows from the guessed frequency and trend,
    keeping enough rows for training after warm-up.

    ``cycle_seconds`` is the length of the seasonal cycle the frequency was
    counted over (one week for daily data). Fourier terms are only added when
    it is known and the frequency is above 1.
    """
    max_history = max(1, history_length - min_training_rows)

    candidate_lags = sorted({1, 2, 3, int(frequency), 2 * int(frequency)})
    lags = [lag for lag in candidate_lags if 1 <= lag <= max_history]
    if not lags:
        lags = [1]

    candidate_windows = sorted({int(frequency), int(trend)})
    windows = [window for window in candidate_windows if 2 <= window <= max_history]
    if not windows:
        windows = [min(2, max_history)] if max_history >= 2 else []

    fourier_period = float(cycle_seconds) if frequency > 1 and cycle_seconds else None
    return FeatureBuilderConfig(
        target_column=target_column,
        date_column=date_column,
        lags=tuple(lags),
        rolling_windows=tuple(windows),
        fourier_period=fourier_period,
        fourier_order=2,
    )


class FeatureBuilder:
    """
    Constructs calendar, lagged, rolling, and harmonic features for a particular target column.
    """

    def __init__(self, config: FeatureBuilderConfig) -> None:
        self.config = config
        self.feature_columns_: Optional[List[str]] = None
        self.required_history_: int = max(
            max(config.lags, default=1), max(config.rolling_windows, default=1)
        )

    @property
    def target(self) -> str:
        return self.config.target_column

    def base_features(self, dates) -> pd.DataFrame:
        """Deterministic features that depend only on the timestamps."""
        features = numeric_signature(dates)
        if self.config.fourier_period:
            features = features.join(
                fourier_terms(dates, period=self.config.fourier_period, order=self.config.fourier_order)
            )
        return features

    def build_training_matrix(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        frame = df.reset_index(drop=True)
        features = self._assemble_feature_frame(frame)
        features = features.dropna()
        X = features.drop(columns=[self.target])
        y = features[self.target]
        self.feature_columns_ = X.columns.tolist()
        return X, y

    def forecast(self, df: pd.DataFrame, model, future_index: pd.DatetimeIndex) -> pd.DataFrame:
        if self.feature_columns_ is None:
            raise RuntimeError("FeatureBuilder must be fitted before forecasting.")

        # Maintain a working history series for recursive forecasting.
        history = df[self.target].astype(float).tolist()
        required_length = self.required_history_ + 1
        if len(history) < required_length:
            raise ValueError(
                f"Insufficient history ({len(history)}) for target {self.target}; "
                f"need at least {required_length} observations."
            )

        if len(future_index) == 0:
            return pd.DataFrame(columns=[self.config.date_column, f"{self.target}_prediction"])

        future_base = self.base_features(future_index)
        predictions: List[float] = []
        for step in range(len(future_index)):
            row = future_base.iloc[step].to_dict()
            row.update(self._single_lag_features(history))
            row.update(self._single_rolling_features(history))
            ordered_row = [row[col] for col in self.feature_columns_]
            X_row = pd.DataFrame([ordered_row], columns=self.feature_columns_, dtype=float)
            y_hat = float(model.predict(X_row)[0])
            predictions.append(y_hat)

            # Append prediction for recursive lags and rolling statistics.
            history.append(y_hat)

        return pd.DataFrame(
            {
                self.config.date_column: future_index,
                f"{self.target}_prediction": predictions,
            }
        )

    # Internal helpers -----------------------------------------------------------------

    def _assemble_feature_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        target_series = df[self.target].astype(float)
        composed = self.base_features(df[self.config.date_column])
        composed = composed.join(self._lag_features(target_series))
        composed = composed.join(self._rolling_features(target_series))
        composed[self.target] = target_series
        return composed

    def _lag_features(self, series: pd.Series) -> pd.DataFrame:
        frame = pd.DataFrame(index=series.index)
        for lag in self.config.lags:
            frame[f"{self.target}_lag_{lag}"] = series.shift(lag)
        return frame

    def _rolling_features(self, series: pd.Series) -> pd.DataFrame:
        frame = pd.DataFrame(index=series.index)
        shifted = series.shift(1)
        for window in self.config.rolling_windows:
            rolling = shifted.rolling(window=window, min_periods=window)
            frame[f"{self.target}_roll_mean_{window}"] = rolling.mean()
            if window > 1:
                frame[f"{self.target}_roll_std_{window}"] = rolling.std()
            frame[f"{self.target}_roll_min_{window}"] = rolling.min()
            frame[f"{self.target}_roll_max_{window}"] = rolling.max()
        return frame

    def _single_lag_features(self, history: Sequence[float]) -> Dict[str, float]:
        data: Dict[str, float] = {}
        for lag in self.config.lags:
            data[f"{self.target}_lag_{lag}"] = float(history[-lag])
        return data

    def _single_rolling_features(self, history: Sequence[float]) -> Dict[str, float]:
        data: Dict[str, float] = {}
        for window in self.config.rolling_windows:
            window_slice = np.asarray(history[-window:], dtype=float)
            data[f"{self.target}_roll_mean_{window}"] = float(np.mean(window_slice))
            if window > 1:
                data[f"{self.target}_roll_std_{window}"] = float(np.std(window_slice, ddof=1))
            data[f"{self.target}_roll_min_{window}"] = float(np.min(window_slice))
            data[f"{self.target}_roll_max_{window}"] = float(np.max(window_slice))
        return data
