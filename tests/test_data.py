"""Tests for loading and cleaning time-indexed tables."""

import numpy as np
import pandas as pd
import pytest

from timekit.data import clean_series_data, load_raw_data, load_series_data


def test_load_series_data(daily_csv):
    bundle = load_series_data(daily_csv, "date", ["value"])

    assert bundle.summary.scale == "day"
    assert bundle.summary.n_obs == 730
    assert bundle.frame["date"].is_monotonic_increasing
    assert isinstance(bundle.index, pd.DatetimeIndex)
    assert bundle.value_columns == ("value",)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_raw_data(tmp_path / "nope.csv")


def test_missing_columns():
    df = pd.DataFrame({"date": ["2020-01-01"], "price": [1.0]})
    with pytest.raises(ValueError, match="value"):
        clean_series_data(df, "date", ["value"])


def test_cleaning_sorts_interpolates_and_collapses_duplicates():
    df = pd.DataFrame(
        {
            "date": ["2020-01-04", "2020-01-01", "2020-01-02", "2020-01-02", "bad", "2020-01-03"],
            "value": [40.0, 10.0, 18.0, 22.0, 99.0, None],
        }
    )
    bundle = clean_series_data(df, "date", ["value"])
    frame = bundle.frame

    assert frame["date"].dt.day.tolist() == [1, 2, 3, 4]
    assert frame["value"].tolist() == [10.0, 20.0, 30.0, 40.0]
    assert not frame["value"].isna().any()


def test_non_numeric_column_is_rejected():
    df = pd.DataFrame({"date": ["2020-01-01", "2020-01-02"], "value": ["a", "b"]})
    with pytest.raises(ValueError):
        clean_series_data(df, "date", ["value"])


def test_edge_gaps_are_filled():
    df = pd.DataFrame({"date": pd.date_range("2020-01-01", periods=4), "value": [np.nan, 2.0, 3.0, np.nan]})
    frame = clean_series_data(df, "date", ["value"]).frame
    assert frame["value"].tolist() == [2.0, 2.0, 3.0, 3.0]
