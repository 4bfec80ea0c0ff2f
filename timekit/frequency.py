"""
Automatic frequency and trend selection.

Both guessers answer the same question for a different span: how many
observations does one period hold? The period either comes from the caller
("2 weeks") or from the active time scale template for the detected scale.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from numbers import Number
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .summary import coerce_datetime_index, get_timeseries_summary, wall_clock_seconds
from .template import lookup_time_scale_template

logger = logging.getLogger(__name__)

PeriodLike = Union[str, int, float]

_UNIT_ALIASES: Dict[str, str] = {
    "s": "second", "sec": "second", "secs": "second", "second": "second", "seconds": "second",
    "min": "minute", "mins": "minute", "minute": "minute", "minutes": "minute",
    "h": "hour", "hr": "hour", "hrs": "hour", "hour": "hour", "hours": "hour",
    "d": "day", "day": "day", "days": "day",
    "w": "week", "wk": "week", "wks": "week", "week": "week", "weeks": "week",
    "m": "month", "mon": "month", "month": "month", "months": "month",
    "q": "quarter", "qtr": "quarter", "quarter": "quarter", "quarters": "quarter",
    "y": "year", "yr": "year", "yrs": "year", "year": "year", "years": "year",
}

_FIXED_UNIT_SECONDS: Dict[str, int] = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}

_CALENDAR_UNIT_MONTHS: Dict[str, int] = {
    "month": 1,
    "quarter": 3,
    "year": 12,
}

# 1970-01-05 was the first Monday after the epoch.
_EPOCH_MONDAY_OFFSET_DAYS = 4

_MEAN_MONTH_SECONDS = 365.25 / 12 * 86400

_PERIOD_PATTERN = re.compile(r"^\s*(\d+)?\s*([A-Za-z]+)\s*$")


@dataclass(frozen=True)
class Period:
    count: int
    unit: str

    def label(self) -> str:
        suffix = "" if self.count == 1 else "s"
        return f"{self.count} {self.unit}{suffix}"

    def to_offset(self) -> Union[pd.Timedelta, pd.DateOffset]:
        """Offset to add to a timestamp to move forward by this period."""
        if self.unit in _FIXED_UNIT_SECONDS:
            return pd.Timedelta(seconds=self.count * _FIXED_UNIT_SECONDS[self.unit])
        if self.unit == "week":
            return pd.Timedelta(weeks=self.count)
        return pd.DateOffset(months=self.count * _CALENDAR_UNIT_MONTHS[self.unit])

    def seconds(self) -> float:
        """Nominal length in seconds. Calendar months count as 30.4375 days."""
        if self.unit in _FIXED_UNIT_SECONDS:
            return float(self.count * _FIXED_UNIT_SECONDS[self.unit])
        if self.unit == "week":
            return float(self.count * 7 * 86400)
        return float(self.count * _CALENDAR_UNIT_MONTHS[self.unit]) * _MEAN_MONTH_SECONDS


def parse_period(text: str) -> Period:
    """Parse strings such as ``"1 week"``, ``"3 months"`` or ``"quarter"``."""
    match = _PERIOD_PATTERN.match(str(text))
    if match is None:
        raise ValueError(f"Could not parse period: {text!r}")

    count_text, unit_text = match.groups()
    unit = _UNIT_ALIASES.get(unit_text.lower())
    if unit is None:
        raise ValueError(f"Unknown period unit in {text!r}")

    count = int(count_text) if count_text else 1
    if count <= 0:
        raise ValueError(f"Period count must be positive: {text!r}")
    return Period(count=count, unit=unit)


def period_bins(idx: pd.DatetimeIndex, period: Period) -> np.ndarray:
    """Integer bucket id of every timestamp for consecutive ``period`` spans."""
    if period.unit in _FIXED_UNIT_SECONDS:
        width = period.count * _FIXED_UNIT_SECONDS[period.unit]
        return np.floor_divide(wall_clock_seconds(idx), width).astype(np.int64)

    if period.unit == "week":
        days = np.floor_divide(wall_clock_seconds(idx), 86400).astype(np.int64)
        return np.floor_divide(days - _EPOCH_MONDAY_OFFSET_DAYS, 7 * period.count)

    span = period.count * _CALENDAR_UNIT_MONTHS[period.unit]
    month_ordinal = np.asarray(idx.year, dtype=np.int64) * 12 + np.asarray(idx.month, dtype=np.int64) - 1
    return np.floor_divide(month_ordinal, span)


def get_period_statistic(
    idx,
    period: Union[str, Period],
    fn: Callable[[np.ndarray], float] = np.median,
) -> int:
    """
    Count observations per ``period`` bucket and summarise the counts with ``fn``.
    """
    idx = coerce_datetime_index(idx)
    if not isinstance(period, Period):
        period = parse_period(period)

    counts = _bucket_counts(idx, period)
    return int(round(float(fn(counts))))


def _bucket_counts(idx: pd.DatetimeIndex, period: Period) -> np.ndarray:
    return pd.Series(period_bins(idx, period)).value_counts(sort=False).to_numpy()


def _validate_numeric_period(period: Number, kind: str) -> Number:
    if isinstance(period, bool) or period <= 0:
        raise ValueError(f"Numeric {kind} period must be positive, got {period!r}")
    return period


def _announce(kind: str, value: Number, period_label: str, message: bool) -> None:
    if message:
        logger.info("%s = %s observations per %s", kind, value, period_label)


def select_frequency(idx, period: PeriodLike = "auto", message: bool = True) -> Tuple[Number, Optional[Period]]:
    """
    Guess the number of observations in one seasonal cycle and the cycle it was counted over.

    ``period`` may be a number (returned unchanged), a period string such as
    ``"1 week"``, or ``"auto"`` to use the time scale template. With ``"auto"``
    the series must hold at least three cycles; otherwise the next finer
    template row is tried and, failing that, a frequency of 1 is returned.
    The cycle is ``None`` for numeric periods and for the frequency-1 fallback.
    """
    if isinstance(period, Number):
        return _validate_numeric_period(period, "frequency"), None

    idx = coerce_datetime_index(idx)
    if period != "auto":
        target = parse_period(period)
        freq = get_period_statistic(idx, target)
        _announce("frequency", freq, target.label(), message)
        return freq, target

    summary = get_timeseries_summary(idx)
    if summary.scale is None:
        raise ValueError("At least two distinct timestamps are required for automatic frequency selection.")

    target = parse_period(lookup_time_scale_template(summary.scale, "frequency"))
    freq = get_period_statistic(idx, target)

    if summary.n_obs < 3 * freq:
        target = parse_period(lookup_time_scale_template(summary.scale, "frequency", index_shift=-1))
        freq = get_period_statistic(idx, target)

    if summary.n_obs < 3 * freq:
        if message:
            logger.info(
                "frequency = 1 observation: %d observations cannot hold three cycles of %s",
                summary.n_obs,
                target.label(),
            )
        return 1, None

    _announce("frequency", freq, target.label(), message)
    return freq, target


def get_frequency(idx, period: PeriodLike = "auto", message: bool = True) -> Number:
    """
    Guess the number of observations in one seasonal cycle.

    See :func:`select_frequency` for how ``period`` is resolved.
    """
    return select_frequency(idx, period=period, message=message)[0]


def get_trend(idx, period: PeriodLike = "auto", message: bool = True) -> Number:
    """
    Guess the number of observations in one trend window.

    Works like :func:`get_frequency` against the template's trend column. With
    ``"auto"`` the series must reach past a single trend window; otherwise the
    next finer row is tried and, failing that, the whole series is the window.
    """
    if isinstance(period, Number):
        return _validate_numeric_period(period, "trend")

    idx = coerce_datetime_index(idx)
    if period != "auto":
        target = parse_period(period)
        trend = get_period_statistic(idx, target)
        _announce("trend", trend, target.label(), message)
        return trend

    summary = get_timeseries_summary(idx)
    if summary.scale is None:
        raise ValueError("At least two distinct timestamps are required for automatic trend selection.")

    target = parse_period(lookup_time_scale_template(summary.scale, "trend"))
    if len(_bucket_counts(idx, target)) < 2:
        target = parse_period(lookup_time_scale_template(summary.scale, "trend", index_shift=-1))

    if len(_bucket_counts(idx, target)) < 2:
        trend = summary.n_obs
    else:
        trend = get_period_statistic(idx, target)

    _announce("trend", trend, target.label(), message)
    return trend
