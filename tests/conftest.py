import numpy as np
import pandas as pd
import pytest

from timekit.template import reset_time_scale_template


@pytest.fixture(autouse=True)
def default_template():
    """Every test starts and ends with the default time scale template."""
    reset_time_scale_template()
    yield
    reset_time_scale_template()


@pytest.fixture
def business_days():
    return pd.bdate_range("2013-01-01", "2016-12-30")


@pytest.fixture
def half_hourly():
    return pd.date_range("2014-01-06", periods=48 * 70, freq="30min")


@pytest.fixture
def daily_csv(tmp_path):
    """Two years of daily data with a weekly cycle and a linear trend."""
    dates = pd.date_range("2021-01-01", "2022-12-31", freq="D")
    t = np.arange(len(dates), dtype=float)
    values = 100 + 0.05 * t + 5 * np.sin(2 * np.pi * t / 7)
    path = tmp_path / "series.csv"
    pd.DataFrame({"date": dates.strftime("%Y-%m-%d"), "value": values}).to_csv(path, index=False)
    return path
