"""Tests for candidate models, accuracy metrics and calibration tables."""

import math

import numpy as np
import pandas as pd
import pytest

from timekit.models import (
    CALIBRATION_COLUMNS,
    ModelSelector,
    accuracy_metrics,
    calibration_table,
    default_candidates,
    extract_feature_importances,
)


def test_accuracy_metrics_known_values():
    metrics = accuracy_metrics([1, 2, 3, 4], [1, 2, 3, 5], y_train=[1, 2, 3])

    assert metrics["mae"] == pytest.approx(0.25)
    assert metrics["rmse"] == pytest.approx(0.5)
    assert metrics["mape"] == pytest.approx(6.25)
    assert metrics["smape"] == pytest.approx(100 * (2 / 9) / 4)
    assert metrics["mase"] == pytest.approx(0.25)
    assert metrics["rsq"] == pytest.approx(0.8)


def test_accuracy_metrics_degenerate_inputs():
    metrics = accuracy_metrics([0, 0], [0, 1])
    assert math.isnan(metrics["mase"])
    assert math.isnan(metrics["mape"])
    assert math.isnan(metrics["rsq"])
    assert metrics["smape"] == pytest.approx(100.0)

    with pytest.raises(ValueError):
        accuracy_metrics([1, 2], [1])
    with pytest.raises(ValueError):
        accuracy_metrics([], [])


def test_calibration_table_orders_by_mae():
    records = [
        {"model": "b", "mae": 2.0, "mape": 1, "mase": 1, "smape": 1, "rmse": 2, "rsq": 0.5, "cv_mae": 1.0},
        {"model": "a", "mae": 1.0, "mape": 1, "mase": 1, "smape": 1, "rmse": 1, "rsq": 0.9, "cv_mae": 3.0},
    ]
    table = calibration_table(records)

    assert table["model"].tolist() == ["a", "b"]
    assert list(table.columns[: len(CALIBRATION_COLUMNS)]) == list(CALIBRATION_COLUMNS)
    assert "cv_mae" in table.columns


def test_calibration_table_edge_cases():
    assert list(calibration_table([]).columns) == list(CALIBRATION_COLUMNS)
    with pytest.raises(ValueError):
        calibration_table([{"model": "a", "mae": 1.0}])


def test_selector_prefers_linear_model_on_linear_data():
    rng = np.random.default_rng(0)
    X = pd.DataFrame({"x1": np.arange(120, dtype=float), "x2": rng.normal(size=120)})
    y = 3 * X["x1"] + 2 * X["x2"] + 1

    selector = ModelSelector(default_candidates(mode="fast"), n_splits=3)
    best = selector.fit(X, y, feature_names=X.columns)

    assert best.name == "linear_regression"
    assert best.mean_absolute_error == pytest.approx(0.0, abs=1e-6)
    assert [artifact.name for artifact in selector.evaluated_] == ["linear_regression", "hist_gradient_boosting"]
    assert sum(best.feature_importances.values()) == pytest.approx(1.0)


def test_selector_without_candidates():
    with pytest.raises(ValueError):
        ModelSelector([]).fit(pd.DataFrame({"x": [1.0]}), pd.Series([1.0]), feature_names=["x"])


def test_robust_candidates():
    names = [candidate.name for candidate in default_candidates(mode="robust")]
    assert names == ["linear_regression", "ridge_regression", "hist_gradient_boosting", "random_forest"]


def test_feature_importances_without_support():
    assert extract_feature_importances(object(), ["x"]) == {}


def test_calibrate_replaces_cross_validation_choice():
    rng = np.random.default_rng(0)
    X = pd.DataFrame({"x1": np.arange(120, dtype=float), "x2": rng.normal(size=120)})
    y = 3 * X["x1"] + 2 * X["x2"] + 1

    selector = ModelSelector(default_candidates(mode="fast"), n_splits=3)
    assert selector.fit(X, y, feature_names=X.columns).name == "linear_regression"

    y_true = np.array([10.0, 11.0, 12.0])

    def forecaster(estimator):
        # Pretend only the boosted model tracks the assessment window.
        if type(estimator).__name__ == "HistGradientBoostingRegressor":
            return y_true
        return y_true + 5.0

    table = selector.calibrate(forecaster, y_true, y_train=[1.0, 2.0, 3.0])

    assert list(table["model"]) == ["hist_gradient_boosting", "linear_regression"]
    assert table["mae"].iloc[0] == pytest.approx(0.0)
    assert "cv_mae" in table.columns
    assert selector.best_artifact_.name == "hist_gradient_boosting"
    assert selector.calibration_ is table


def test_calibrate_requires_fit():
    with pytest.raises(RuntimeError):
        ModelSelector(default_candidates(mode="fast")).calibrate(lambda estimator: [1.0], [1.0])
