# flake8: noqa
"""
Time series feature engineering with automatic frequency and trend selection.

This package summarises datetime indexes, guesses how many observations make
up a seasonal cycle and a trend window (driven by an overridable time scale
template), derives calendar features, and runs a calibrated machine learning
forecasting workflow on top of them.
"""

from .calendar import augment_timeseries_signature, make_future_timeseries, timeseries_signature  # noqa: F401
from .frequency import Period, get_frequency, get_period_statistic, get_trend, parse_period, select_frequency  # noqa: F401
from .pipeline import ForecastPipeline, ForecastResult, time_series_split  # noqa: F401
from .summary import TimeSeriesSummary, get_time_scale, get_timeseries_summary  # noqa: F401
from .template import (  # noqa: F401
    get_time_scale_template,
    load_time_scale_template,
    reset_time_scale_template,
    set_time_scale_template,
    time_scale_template,
)
