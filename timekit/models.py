"""
Model selection and calibration utilities for the forecasting pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone
from sklearn.ensemble import HistGradientBoostingRegressor, RandomForestRegressor
from sklearn.linear_model import LinearRegression, Ridge
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import RandomizedSearchCV, TimeSeriesSplit, cross_val_score
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import StandardScaler

CALIBRATION_COLUMNS: Sequence[str] = ("model", "mae", "mape", "mase", "smape", "rmse", "rsq")


@dataclass
class CandidateModel:
    name: str
    estimator: BaseEstimator
    param_distributions: Optional[Dict[str, Sequence[Any]]] = None
    n_iter: int = 15


@dataclass
class ModelArtifact:
    name: str
    estimator: BaseEstimator
    mean_cv_score: float
    mean_absolute_error: float
    cv_scores: List[float]
    best_params: Dict[str, Any]
    feature_importances: Dict[str, float]


class ModelSelector:
    """
    Ranks candidate estimators by time-series cross-validation inside the
    training window, then re-ranks them on a held-out assessment window.

    After :meth:`fit`, ``best_artifact_`` is the best CV candidate. After
    :meth:`calibrate`, it is the candidate with the lowest assessment MAE and
    ``calibration_`` holds the full accuracy table.
    """

    def __init__(
        self,
        candidates: Iterable[CandidateModel],
        scoring: str = "neg_mean_absolute_error",
        n_splits: int = 5,
        random_state: int = 42,
    ) -> None:
        self.candidates = list(candidates)
        self.scoring = scoring
        self.cv = TimeSeriesSplit(n_splits=n_splits)
        self.random_state = random_state
        self.best_artifact_: Optional[ModelArtifact] = None
        self.evaluated_: List[ModelArtifact] = []
        self.calibration_: Optional[pd.DataFrame] = None

    def fit(self, X: pd.DataFrame, y: pd.Series, feature_names: Sequence[str]) -> ModelArtifact:
        if not self.candidates:
            raise ValueError("No candidate models provided for selection.")

        self.evaluated_ = [self._evaluate_candidate(candidate, X, y, feature_names) for candidate in self.candidates]
        self.best_artifact_ = max(self.evaluated_, key=lambda artifact: artifact.mean_cv_score)
        self.calibration_ = None
        return self.best_artifact_

    def calibrate(
        self,
        forecaster: Callable[[BaseEstimator], Sequence[float]],
        y_true: Sequence[float],
        y_train: Optional[Sequence[float]] = None,
    ) -> pd.DataFrame:
        """
        Score every fitted candidate on the assessment window.

        ``forecaster`` receives a fitted estimator and returns its predictions
        aligned with ``y_true``.
        """
        if not self.evaluated_:
            raise RuntimeError("ModelSelector must be fitted before calibration.")

        records = []
        for artifact in self.evaluated_:
            metrics = accuracy_metrics(y_true, forecaster(artifact.estimator), y_train=y_train)
            records.append({"model": artifact.name, **metrics, "cv_mae": artifact.mean_absolute_error})

        table = calibration_table(records)
        best_name = table["model"].iloc[0]
        self.best_artifact_ = next(artifact for artifact in self.evaluated_ if artifact.name == best_name)
        self.calibration_ = table
        return table

    # Internal ------------------------------------------------------------------------

    def _evaluate_candidate(
        self,
        candidate: CandidateModel,
        X: pd.DataFrame,
        y: pd.Series,
        feature_names: Sequence[str],
    ) -> ModelArtifact:
        if candidate.param_distributions:
            estimator, cv_score, cv_scores, best_params = self._search(candidate, X, y)
        else:
            estimator = clone(candidate.estimator)
            scores = cross_val_score(estimator, X, y, cv=self.cv, scoring=self.scoring, n_jobs=1)
            cv_score, cv_scores, best_params = float(np.mean(scores)), scores.tolist(), {}

        fitted = clone(estimator).fit(X, y)
        return ModelArtifact(
            name=candidate.name,
            estimator=fitted,
            mean_cv_score=cv_score,
            mean_absolute_error=-cv_score,
            cv_scores=cv_scores,
            best_params=best_params,
            feature_importances=extract_feature_importances(fitted, feature_names),
        )

    def _search(self, candidate: CandidateModel, X: pd.DataFrame, y: pd.Series):
        search = RandomizedSearchCV(
            estimator=candidate.estimator,
            param_distributions=candidate.param_distributions,
            n_iter=candidate.n_iter,
            cv=self.cv,
            scoring=self.scoring,
            random_state=self.random_state,
            n_jobs=1,
        )
        search.fit(X, y)
        return (
            search.best_estimator_,
            float(search.best_score_),
            search.cv_results_["mean_test_score"].tolist(),
            dict(search.best_params_),
        )


def default_candidates(random_state: int = 42, mode: str = "robust") -> List[CandidateModel]:
    """
    Provides a curated list of estimators. Linear regression on standardised
    calendar features is always the first candidate.
    """
    linear = CandidateModel(
        name="linear_regression",
        estimator=make_pipeline(StandardScaler(), LinearRegression()),
    )

    hist = CandidateModel(
        name="hist_gradient_boosting",
        estimator=HistGradientBoostingRegressor(
            loss="squared_error",
            random_state=random_state,
            max_iter=200,
        ),
        param_distributions={
            "max_depth": [3, 5, 7, None],
            "max_leaf_nodes": [15, 31, 63],
            "learning_rate": [0.01, 0.03, 0.05, 0.1],
            "l2_regularization": [0.0, 0.1, 0.3, 0.5],
            "min_samples_leaf": [5, 10, 20],
        },
        n_iter=3,
    )

    if mode == "fast":
        hist.param_distributions = None
        hist.n_iter = 0
        return [linear, hist]

    forest = CandidateModel(
        name="random_forest",
        estimator=RandomForestRegressor(
            n_estimators=200,
            random_state=random_state,
            n_jobs=-1,
            min_samples_leaf=5,
        ),
        param_distributions={
            "max_depth": [6, 8, 12, None],
            "max_features": ["sqrt", "log2", 0.6, 0.8],
            "min_samples_leaf": [2, 5, 10],
        },
        n_iter=3,
    )

    ridge = CandidateModel(
        name="ridge_regression",
        estimator=make_pipeline(StandardScaler(), Ridge()),
        param_distributions={
            "ridge__alpha": [0.1, 0.5, 1.0, 5.0, 10.0, 25.0],
        },
        n_iter=3,
    )

    return [linear, ridge, hist, forest]


def extract_feature_importances(estimator: BaseEstimator, feature_names: Sequence[str]) -> Dict[str, float]:
    """
    Attempt to compute a ranked mapping of feature importances for the fitted estimator.
    """
    if isinstance(estimator, Pipeline):
        estimator = estimator.steps[-1][1]

    if hasattr(estimator, "feature_importances_"):
        importances = getattr(estimator, "feature_importances_")
    elif hasattr(estimator, "coef_"):
        coef = getattr(estimator, "coef_")
        importances = np.abs(np.atleast_1d(coef))
    else:
        return {}

    importances = np.asarray(importances, dtype=float)
    if importances.ndim > 1:
        importances = np.mean(importances, axis=0)

    total = float(np.sum(importances))
    if total == 0.0 or not np.isfinite(total):
        return {name: 0.0 for name in feature_names}

    normalised = importances / total
    return {
        name: float(value)
        for name, value in zip(feature_names, normalised)
    }


def accuracy_metrics(y_true, y_pred, y_train=None) -> Dict[str, float]:
    """
    Forecast accuracy of ``y_pred`` against ``y_true``.

    ``mape`` and ``smape`` are percentages. ``mase`` scales the error by the
    in-sample one-step naive error of ``y_train`` and is NaN without it.
    """
    actual = np.asarray(y_true, dtype=float)
    predicted = np.asarray(y_pred, dtype=float)
    if actual.shape != predicted.shape:
        raise ValueError("y_true and y_pred must have the same length.")
    if actual.size == 0:
        raise ValueError("Cannot compute accuracy on empty inputs.")

    mae = float(mean_absolute_error(actual, predicted))
    rmse = float(np.sqrt(mean_squared_error(actual, predicted)))

    with np.errstate(divide="ignore", invalid="ignore"):
        nonzero = actual != 0
        if nonzero.any():
            relative = (actual[nonzero] - predicted[nonzero]) / actual[nonzero]
            mape = float(np.mean(np.abs(relative)) * 100)
        else:
            mape = float("nan")
        denom = np.abs(actual) + np.abs(predicted)
        ratios = np.where(denom == 0, 0.0, 2 * np.abs(predicted - actual) / denom)
        smape = float(np.mean(ratios) * 100)

    mase = float("nan")
    if y_train is not None:
        train = np.asarray(y_train, dtype=float)
        if train.size > 1:
            naive_error = float(np.mean(np.abs(np.diff(train))))
            if naive_error > 0:
                mase = mae / naive_error

    if actual.size > 1 and np.var(actual) > 0:
        rsq = float(r2_score(actual, predicted))
    else:
        rsq = float("nan")

    return {"mae": mae, "mape": mape, "mase": mase, "smape": smape, "rmse": rmse, "rsq": rsq}


def calibration_table(records: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Per-model accuracy rows ordered from lowest to highest MAE."""
    frame = pd.DataFrame.from_records(list(records))
    if frame.empty:
        return pd.DataFrame(columns=list(CALIBRATION_COLUMNS))
    missing = [col for col in CALIBRATION_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Calibration records are missing fields: {', '.join(missing)}")
    ordered = frame.loc[:, list(CALIBRATION_COLUMNS) + [c for c in frame.columns if c not in CALIBRATION_COLUMNS]]
    return ordered.sort_values("mae", kind="stable").reset_index(drop=True)
