"""
Summaries of datetime indexes and detection of their time scale.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .template import TIME_SCALES

logger = logging.getLogger(__name__)

# Lower bound (in seconds) of the median spacing for each scale.
TIME_SCALE_SECONDS: Dict[str, float] = {
    "second": 1.0,
    "minute": 60.0,
    "hour": 3600.0,
    "day": 86400.0,
    "week": 7 * 86400.0,
    "month": 28 * 86400.0,
    "quarter": 89 * 86400.0,
    "year": 365 * 86400.0,
}


@dataclass(frozen=True)
class TimeSeriesSummary:
    """Shape and spacing of a datetime index. Differences are in seconds."""

    n_obs: int
    start: pd.Timestamp
    end: pd.Timestamp
    tzone: Optional[str]
    scale: Optional[str]
    diff_minimum: float
    diff_q1: float
    diff_median: float
    diff_mean: float
    diff_q3: float
    diff_maximum: float

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(self)])


def coerce_datetime_index(values) -> pd.DatetimeIndex:
    """
    Convert ``values`` into a sorted ``DatetimeIndex``.
    """
    if isinstance(values, pd.DataFrame):
        raise ValueError("Expected a one-dimensional collection of timestamps, got a DataFrame.")

    if isinstance(values, pd.DatetimeIndex):
        idx = values
    else:
        try:
            idx = pd.DatetimeIndex(pd.to_datetime(values))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Could not parse timestamps: {exc}") from exc

    if len(idx) == 0:
        raise ValueError("Cannot work with an empty datetime index.")
    if idx.hasnans:
        raise ValueError("Datetime index contains missing timestamps.")

    if not idx.is_monotonic_increasing:
        logger.warning("Datetime index is not sorted; sorting %d timestamps.", len(idx))
        idx = idx.sort_values()
    return idx


def epoch_seconds(idx: pd.DatetimeIndex) -> np.ndarray:
    """Seconds since the Unix epoch (UTC for tz-aware indexes)."""
    return idx.as_unit("ns").asi8.astype(float) / 1e9


def wall_clock_seconds(idx: pd.DatetimeIndex) -> np.ndarray:
    """Seconds since the epoch measured on the local wall clock."""
    if idx.tz is not None:
        idx = idx.tz_localize(None)
    return epoch_seconds(idx)


def _distinct_diffs(idx: pd.DatetimeIndex) -> np.ndarray:
    seconds = np.unique(epoch_seconds(idx))
    return np.diff(seconds)


def get_time_scale(idx) -> str:
    """
    Return the coarsest time scale whose lower bound does not exceed the
    median spacing between distinct timestamps.
    """
    idx = coerce_datetime_index(idx)
    diffs = _distinct_diffs(idx)
    if diffs.size == 0:
        raise ValueError("At least two distinct timestamps are required to detect a time scale.")
    return _scale_for_spacing(float(np.median(diffs)))


def _scale_for_spacing(median_diff: float) -> str:
    scale = TIME_SCALES[0]
    for name in TIME_SCALES:
        if TIME_SCALE_SECONDS[name] <= median_diff:
            scale = name
    return scale


def get_timeseries_summary(idx) -> TimeSeriesSummary:
    idx = coerce_datetime_index(idx)
    diffs = _distinct_diffs(idx)

    if diffs.size:
        q = np.quantile(diffs, [0.0, 0.25, 0.5, 0.75, 1.0])
        stats = dict(
            diff_minimum=float(q[0]),
            diff_q1=float(q[1]),
            diff_median=float(q[2]),
            diff_mean=float(np.mean(diffs)),
            diff_q3=float(q[3]),
            diff_maximum=float(q[4]),
        )
        scale: Optional[str] = _scale_for_spacing(stats["diff_median"])
    else:
        stats = {key: float("nan") for key in (
            "diff_minimum", "diff_q1", "diff_median", "diff_mean", "diff_q3", "diff_maximum"
        )}
        scale = None

    return TimeSeriesSummary(
        n_obs=int(len(idx)),
        start=idx[0],
        end=idx[-1],
        tzone=str(idx.tz) if idx.tz is not None else None,
        scale=scale,
        **stats,
    )
