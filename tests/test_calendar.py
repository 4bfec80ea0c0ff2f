"""Tests for calendar features and future index generation."""

import numpy as np
import pandas as pd
import pytest

from timekit.calendar import (
    SIGNATURE_COLUMNS,
    augment_timeseries_signature,
    fourier_terms,
    make_future_timeseries,
    numeric_signature,
    timeseries_signature,
)


def test_signature_values_for_known_timestamp():
    stamp = pd.Timestamp("2024-03-15 14:30:45")
    row = timeseries_signature([stamp]).iloc[0]

    assert row["index_num"] == int(stamp.timestamp())
    assert np.isnan(row["diff"])
    assert row["year"] == 2024
    assert row["year_iso"] == 2024
    assert row["half"] == 1
    assert row["quarter"] == 1
    assert row["month"] == 3
    assert row["month_lbl"] == "March"
    assert row["day"] == 15
    assert (row["hour"], row["minute"], row["second"]) == (14, 30, 45)
    assert row["hour12"] == 2
    assert row["am_pm"] == 2
    assert row["wday"] == 5
    assert row["wday_lbl"] == "Friday"
    assert row["qday"] == 75
    assert row["yday"] == 75
    assert row["mweek"] == 3
    assert row["week"] == 11
    assert row["week_iso"] == 11
    assert (row["week2"], row["week3"], row["week4"]) == (1, 2, 3)
    assert row["mday7"] == 3


def test_signature_columns_and_diff():
    idx = pd.date_range("2021-06-30 23:00", periods=3, freq="h")
    signature = timeseries_signature(idx)

    assert list(signature.columns) == list(SIGNATURE_COLUMNS)
    assert signature["diff"].iloc[1:].tolist() == [3600.0, 3600.0]
    assert signature["hour12"].tolist() == [11, 12, 1]
    assert signature["am_pm"].tolist() == [2, 1, 1]
    assert signature["half"].tolist() == [1, 2, 2]
    assert signature["qday"].tolist() == [91, 1, 1]


def test_numeric_signature_drops_labels():
    features = numeric_signature(pd.date_range("2020-01-01", periods=4, freq="D"))
    assert "month_lbl" not in features.columns
    assert "wday_lbl" not in features.columns
    assert "diff" not in features.columns
    assert all(np.issubdtype(dtype, np.number) for dtype in features.dtypes)


def test_augment_keeps_row_order():
    df = pd.DataFrame({"date": ["2020-01-03", "2020-01-01", "2020-01-02"], "value": [3, 1, 2]})
    augmented = augment_timeseries_signature(df, "date")

    assert augmented["value"].tolist() == [3, 1, 2]
    assert augmented["day"].tolist() == [3, 1, 2]
    assert len(augmented.columns) == 2 + len(SIGNATURE_COLUMNS)


def test_augment_requires_date_column():
    with pytest.raises(ValueError):
        augment_timeseries_signature(pd.DataFrame({"value": [1]}), "date")


def test_fourier_terms_shape_and_phase():
    terms = fourier_terms(["1970-01-01", "1970-01-08"], period=7 * 86400, order=2)

    assert list(terms.columns) == ["fourier_sin_1", "fourier_cos_1", "fourier_sin_2", "fourier_cos_2"]
    assert np.allclose(terms["fourier_sin_1"], 0.0)
    assert np.allclose(terms["fourier_cos_1"], 1.0)
    with pytest.raises(ValueError):
        fourier_terms(["1970-01-01"], period=0, order=1)


def test_future_daily_count():
    idx = pd.date_range("2020-01-01", "2020-01-10", freq="D")
    future = make_future_timeseries(idx, 3)
    assert list(future) == list(pd.date_range("2020-01-11", periods=3, freq="D"))


def test_future_skips_unobserved_weekdays():
    idx = pd.bdate_range("2023-12-01", "2024-01-05")
    future = make_future_timeseries(idx, 3, inspect_weekdays=True)
    assert list(future.strftime("%Y-%m-%d")) == ["2024-01-08", "2024-01-09", "2024-01-10"]


def test_future_with_period_string_and_skip_values():
    idx = pd.date_range("2020-01-01", "2020-01-10", freq="D")
    assert len(make_future_timeseries(idx, "1 week")) == 7

    future = make_future_timeseries(idx, 3, skip_values=["2020-01-12"])
    assert list(future.strftime("%Y-%m-%d")) == ["2020-01-11", "2020-01-13", "2020-01-14"]


def test_future_monthly_and_quarterly_use_calendar_months():
    monthly = pd.date_range("2020-01-01", periods=12, freq="MS")
    assert list(make_future_timeseries(monthly, 2).strftime("%Y-%m-%d")) == ["2021-01-01", "2021-02-01"]

    quarterly = pd.date_range("2020-01-01", periods=8, freq="QS")
    assert list(make_future_timeseries(quarterly, 2).strftime("%Y-%m-%d")) == ["2022-01-01", "2022-04-01"]


def test_future_keeps_timezone():
    idx = pd.date_range("2020-01-01", periods=24, freq="h", tz="UTC")
    future = make_future_timeseries(idx, 2)
    assert str(future.tz) == "UTC"
    assert future[0] == pd.Timestamp("2020-01-02 00:00", tz="UTC")


def test_future_rejects_bad_length():
    idx = pd.date_range("2020-01-01", periods=5, freq="D")
    with pytest.raises(ValueError):
        make_future_timeseries(idx, 0)
    with pytest.raises(ValueError):
        make_future_timeseries(idx[:1], 3)


def test_weekday_inspection_ignores_monthly_and_quarterly_steps():
    quarterly = pd.date_range("2020-01-01", periods=8, freq="QS")
    future = make_future_timeseries(quarterly, 4, inspect_weekdays=True)
    assert list(future.strftime("%Y-%m-%d")) == ["2022-01-01", "2022-04-01", "2022-07-01", "2022-10-01"]

    monthly = pd.date_range("2020-01-01", periods=24, freq="MS")
    assert len(make_future_timeseries(monthly, "6 months", inspect_weekdays=True)) == 6


def test_skip_values_accepts_datetime_index():
    idx = pd.date_range("2020-01-01", "2020-01-10", freq="D")
    future = make_future_timeseries(idx, 2, skip_values=pd.DatetimeIndex(["2020-01-12"]))
    assert list(future.strftime("%Y-%m-%d")) == ["2020-01-11", "2020-01-13"]

    assert len(make_future_timeseries(idx, 2, skip_values=pd.DatetimeIndex([]))) == 2


def test_skip_values_follow_index_timezone():
    idx = pd.date_range("2020-01-01", periods=5, freq="D", tz="Asia/Kathmandu")
    naive = make_future_timeseries(idx, 2, skip_values=["2020-01-06"])
    assert list(naive.strftime("%Y-%m-%d")) == ["2020-01-07", "2020-01-08"]

    in_utc = pd.Timestamp("2020-01-06", tz="Asia/Kathmandu").tz_convert("UTC")
    aware = make_future_timeseries(idx, 2, skip_values=[in_utc])
    assert list(aware.strftime("%Y-%m-%d")) == ["2020-01-07", "2020-01-08"]
