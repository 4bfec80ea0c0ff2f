"""
Calendar features derived from datetime indexes and extension of indexes into the future.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .frequency import parse_period
from .summary import coerce_datetime_index, epoch_seconds, get_timeseries_summary

SIGNATURE_COLUMNS: Sequence[str] = (
    "index_num",
    "diff",
    "year",
    "year_iso",
    "half",
    "quarter",
    "month",
    "month_lbl",
    "day",
    "hour",
    "minute",
    "second",
    "hour12",
    "am_pm",
    "wday",
    "wday_lbl",
    "mday",
    "qday",
    "yday",
    "mweek",
    "week",
    "week_iso",
    "week2",
    "week3",
    "week4",
    "mday7",
)

# Text labels are not usable as regression inputs.
LABEL_COLUMNS: Sequence[str] = ("month_lbl", "wday_lbl")

_MONTH_SECONDS = 30.4375 * 86400.0
_CALENDAR_SCALE_MONTHS = {"month": 1, "quarter": 3, "year": 12}
# Weekly and coarser steps always land on the weekday they started from.
_WEEKDAY_SCALES = frozenset({"second", "minute", "hour", "day"})


def timeseries_signature(idx) -> pd.DataFrame:
    """
    Expand a datetime index into one row of calendar features per timestamp.

    Weekdays follow ISO numbering (Monday is 1). ``diff`` is the number of
    seconds since the previous timestamp and is missing for the first row.
    """
    idx = coerce_datetime_index(idx)
    local = idx.tz_localize(None) if idx.tz is not None else idx
    seconds = epoch_seconds(idx)

    frame = pd.DataFrame(index=pd.RangeIndex(len(idx)))
    frame["index_num"] = seconds.astype(np.int64)
    frame["diff"] = np.concatenate([[np.nan], np.diff(seconds)])

    iso = local.isocalendar()
    frame["year"] = np.asarray(local.year)
    frame["year_iso"] = iso["year"].to_numpy(dtype=np.int64)
    frame["half"] = np.where(local.month <= 6, 1, 2)
    frame["quarter"] = np.asarray(local.quarter)
    frame["month"] = np.asarray(local.month)
    frame["month_lbl"] = np.asarray(local.month_name())
    frame["day"] = np.asarray(local.day)
    frame["hour"] = np.asarray(local.hour)
    frame["minute"] = np.asarray(local.minute)
    frame["second"] = np.asarray(local.second)
    frame["hour12"] = (frame["hour"] + 11) % 12 + 1
    frame["am_pm"] = np.where(frame["hour"] < 12, 1, 2)
    frame["wday"] = np.asarray(local.dayofweek) + 1
    frame["wday_lbl"] = np.asarray(local.day_name())
    frame["mday"] = frame["day"]

    quarter_start = pd.to_datetime(
        pd.DataFrame({"year": frame["year"], "month": (frame["quarter"] - 1) * 3 + 1, "day": 1})
    )
    days = pd.Series(local.normalize())
    frame["qday"] = (days - quarter_start).dt.days.to_numpy() + 1
    frame["yday"] = np.asarray(local.dayofyear)

    # Weekday of the first of the month, Monday = 0.
    first_wday = (frame["wday"] - 1 - (frame["mday"] - 1)) % 7
    frame["mweek"] = (frame["mday"] - 1 + first_wday) // 7 + 1
    frame["week"] = (frame["yday"] - 1) // 7 + 1
    frame["week_iso"] = iso["week"].to_numpy(dtype=np.int64)
    frame["week2"] = frame["week"] % 2
    frame["week3"] = frame["week"] % 3
    frame["week4"] = frame["week"] % 4
    frame["mday7"] = (frame["mday"] - 1) // 7 + 1

    return frame.loc[:, list(SIGNATURE_COLUMNS)]


def augment_timeseries_signature(df: pd.DataFrame, date_column: str) -> pd.DataFrame:
    """Append signature columns to ``df``, keeping its row order."""
    if date_column not in df.columns:
        raise ValueError(f"Missing date column: {date_column}")

    dates = pd.DatetimeIndex(pd.to_datetime(df[date_column]))
    if dates.hasnans:
        raise ValueError(f"Column '{date_column}' contains missing timestamps.")

    order = np.argsort(dates.asi8, kind="stable")
    signature = timeseries_signature(dates[order])
    signature.index = order
    signature = signature.sort_index()
    signature.index = df.index

    clashes = [col for col in signature.columns if col in df.columns]
    if clashes:
        raise ValueError(f"Signature columns already present in frame: {', '.join(clashes)}")
    return df.join(signature)


def numeric_signature(idx) -> pd.DataFrame:
    """Signature without text labels or the spacing column."""
    signature = timeseries_signature(idx)
    return signature.drop(columns=[*LABEL_COLUMNS, "diff"])


def fourier_terms(idx, period: float, order: int) -> pd.DataFrame:
    """
    Sine/cosine pairs over epoch seconds for a cycle of ``period`` seconds.
    """
    if period <= 0:
        raise ValueError("Fourier period must be positive.")
    if order < 1:
        raise ValueError("Fourier order must be at least 1.")

    seconds = epoch_seconds(coerce_datetime_index(idx))
    frame = pd.DataFrame(index=pd.RangeIndex(len(seconds)))
    for k in range(1, order + 1):
        angle = 2 * np.pi * k * seconds / period
        frame[f"fourier_sin_{k}"] = np.sin(angle)
        frame[f"fourier_cos_{k}"] = np.cos(angle)
    return frame


def _future_step(scale: str, median_diff: float) -> Union[pd.Timedelta, pd.DateOffset]:
    if scale in _CALENDAR_SCALE_MONTHS:
        months = max(1, int(round(median_diff / _MONTH_SECONDS)))
        # Keep quarter/year data on whole quarters/years.
        unit = _CALENDAR_SCALE_MONTHS[scale]
        months = max(unit, int(round(months / unit)) * unit)
        return pd.DateOffset(months=months)
    return pd.Timedelta(seconds=median_diff)


def _align_skip_values(values: Iterable, tz) -> pd.DatetimeIndex:
    skipped = pd.DatetimeIndex(pd.to_datetime(list(values)))
    if skipped.tz is None and tz is not None:
        return skipped.tz_localize(tz)
    if skipped.tz is not None:
        return skipped.tz_convert(tz) if tz is not None else skipped.tz_convert("UTC").tz_localize(None)
    return skipped


def make_future_timeseries(
    idx,
    length_out: Union[int, str],
    inspect_weekdays: bool = False,
    skip_values: Optional[Iterable] = None,
) -> pd.DatetimeIndex:
    """
    Extend ``idx`` past its last timestamp.

    ``length_out`` is either the number of timestamps to produce or a period
    string ("3 months") bounding how far past the last timestamp to go.
    When ``inspect_weekdays`` is set and the index is daily or finer, weekdays
    that never occur in ``idx`` are dropped. Any timestamps in ``skip_values``
    are dropped as well; naive values are read in the index time zone.
    """
    idx = coerce_datetime_index(idx)
    summary = get_timeseries_summary(idx)
    if summary.scale is None:
        raise ValueError("At least two distinct timestamps are required to extend an index.")

    count: Optional[int] = None
    end: Optional[pd.Timestamp] = None
    if isinstance(length_out, str):
        end = idx[-1] + parse_period(length_out).to_offset()
    else:
        count = int(length_out)
        if count <= 0:
            raise ValueError("length_out must be a positive integer or a period string.")

    excluded_weekdays: set = set()
    if inspect_weekdays and summary.scale in _WEEKDAY_SCALES:
        excluded_weekdays = set(range(7)) - set(idx.dayofweek)
    skipped = set(_align_skip_values(skip_values, idx.tz)) if skip_values is not None else set()

    step = _future_step(summary.scale, summary.diff_median)
    last = idx[-1]
    produced: List[pd.Timestamp] = []
    multiple = 0
    while True:
        multiple += 1
        cursor = last + step * multiple
        if end is not None and cursor > end:
            break
        if cursor.dayofweek in excluded_weekdays or cursor in skipped:
            continue
        produced.append(cursor)
        if count is not None and len(produced) >= count:
            break

    return pd.DatetimeIndex(produced, tz=idx.tz, name=idx.name)
