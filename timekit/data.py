"""
Data ingestion and cleansing utilities for time-indexed tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

from .summary import TimeSeriesSummary, get_timeseries_summary

logger = logging.getLogger(__name__)


@dataclass
class SeriesBundle:
    """Container for the cleaned dataframe and the summary of its index."""

    frame: pd.DataFrame
    summary: TimeSeriesSummary
    date_column: str
    value_columns: Sequence[str]

    @property
    def index(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex(self.frame[self.date_column])


def _validate_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")


def load_raw_data(csv_path: Path) -> pd.DataFrame:
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV path does not exist: {csv_path}")
    df = pd.read_csv(csv_path)
    return df


def clean_series_data(df: pd.DataFrame, date_column: str, value_columns: Sequence[str]) -> SeriesBundle:
    value_columns = list(value_columns)
    if not value_columns:
        raise ValueError("At least one value column is required.")
    _validate_columns(df, [date_column, *value_columns])

    working = df.loc[:, [date_column, *value_columns]].copy()
    working[date_column] = pd.to_datetime(working[date_column], errors="coerce")

    unparsed = int(working[date_column].isna().sum())
    if unparsed:
        logger.warning("Dropping %d rows with unparseable dates in '%s'.", unparsed, date_column)
        working = working.dropna(subset=[date_column])
    if working.empty:
        raise ValueError("No rows with valid dates remain after parsing.")

    for column in value_columns:
        working[column] = pd.to_numeric(working[column], errors="coerce")

    # Collapse repeated timestamps before any gap filling.
    if working[date_column].duplicated().any():
        duplicates = int(working[date_column].duplicated().sum())
        logger.warning("Averaging %d duplicate timestamps in '%s'.", duplicates, date_column)
        working = working.groupby(date_column, as_index=False)[value_columns].mean()

    working = working.sort_values(date_column).reset_index(drop=True)

    for column in value_columns:
        if working[column].isna().all():
            raise ValueError(f"Column '{column}' has no numeric values.")
        gaps = int(working[column].isna().sum())
        if gaps:
            logger.info("Interpolating %d missing values in '%s'.", gaps, column)
        working[column] = working[column].interpolate(method="linear", limit_direction="both")
        working[column] = working[column].ffill().bfill()

    summary = get_timeseries_summary(working[date_column])
    return SeriesBundle(
        frame=working,
        summary=summary,
        date_column=date_column,
        value_columns=tuple(value_columns),
    )


def load_series_data(csv_path: Path, date_column: str, value_columns: Sequence[str]) -> SeriesBundle:
    raw = load_raw_data(csv_path)
    return clean_series_data(raw, date_column=date_column, value_columns=value_columns)
