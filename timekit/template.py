"""
Time scale template used by the automatic frequency and trend guessers.

The template maps every detectable time scale (``second`` through ``year``) to
two period strings: the span assumed to hold one seasonal cycle ("frequency")
and the span assumed to hold one trend window ("trend"). The active template is
module-level state so callers can swap it out wholesale and restore it later.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

logger = logging.getLogger(__name__)

TIME_SCALES: Sequence[str] = (
    "second",
    "minute",
    "hour",
    "day",
    "week",
    "month",
    "quarter",
    "year",
)

TEMPLATE_COLUMNS: Sequence[str] = ("time_scale", "frequency", "trend")

_DEFAULT_ROWS = (
    ("second", "1 hour", "12 hours"),
    ("minute", "1 day", "14 days"),
    ("hour", "1 day", "1 month"),
    ("day", "1 week", "3 months"),
    ("week", "1 quarter", "1 year"),
    ("month", "1 year", "5 years"),
    ("quarter", "1 year", "10 years"),
    ("year", "5 years", "30 years"),
)


def time_scale_template() -> pd.DataFrame:
    """Return a fresh copy of the default template."""
    return pd.DataFrame.from_records(_DEFAULT_ROWS, columns=list(TEMPLATE_COLUMNS))


_active_template: pd.DataFrame = time_scale_template()


def get_time_scale_template() -> pd.DataFrame:
    return _active_template.copy()


def _validate_template(template: pd.DataFrame) -> pd.DataFrame:
    # Imported lazily: frequency imports this module for the lookups.
    from .frequency import parse_period

    if not isinstance(template, pd.DataFrame):
        raise ValueError("Time scale template must be a pandas DataFrame.")

    missing = [col for col in TEMPLATE_COLUMNS if col not in template.columns]
    if missing:
        raise ValueError(f"Time scale template is missing columns: {', '.join(missing)}")

    working = template.loc[:, list(TEMPLATE_COLUMNS)].copy()
    working["time_scale"] = working["time_scale"].astype(str).str.strip().str.lower()

    unknown = sorted(set(working["time_scale"]) - set(TIME_SCALES))
    if unknown:
        raise ValueError(f"Unknown time scales in template: {unknown}")

    duplicated = working["time_scale"][working["time_scale"].duplicated()].unique().tolist()
    if duplicated:
        raise ValueError(f"Duplicate time scales in template: {duplicated}")

    for column in ("frequency", "trend"):
        working[column] = working[column].astype(str).str.strip()
        for value in working[column]:
            parse_period(value)

    # Scales the caller left out keep their default targets.
    defaults = time_scale_template().set_index("time_scale")
    defaults.update(working.set_index("time_scale"))
    ordered = defaults.reindex(list(TIME_SCALES)).rename_axis("time_scale").reset_index()
    return ordered.loc[:, list(TEMPLATE_COLUMNS)]


def set_time_scale_template(template: pd.DataFrame) -> pd.DataFrame:
    """
    Install ``template`` as the active time scale template.

    Returns the previously active template so callers can restore it.
    """
    global _active_template

    validated = _validate_template(template)
    previous = _active_template
    _active_template = validated
    logger.debug("Installed time scale template with %d rows", len(validated))
    return previous.copy()


def reset_time_scale_template() -> None:
    global _active_template
    _active_template = time_scale_template()


def load_time_scale_template(path: Path) -> pd.DataFrame:
    """Read a template CSV and make it the active template."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Template path does not exist: {path}")
    template = pd.read_csv(path, dtype=str)
    set_time_scale_template(template)
    logger.info("Loaded time scale template from %s", path)
    return get_time_scale_template()


def lookup_time_scale_template(time_scale: str, kind: str = "frequency", index_shift: int = 0) -> str:
    """
    Return the ``kind`` period string for ``time_scale``.

    ``index_shift`` moves to a finer (negative) or coarser (positive) scale and
    is clamped to the ends of the template.
    """
    if kind not in ("frequency", "trend"):
        raise ValueError("kind must be either 'frequency' or 'trend'")
    if time_scale not in TIME_SCALES:
        raise ValueError(f"Unknown time scale: {time_scale}")

    position = list(TIME_SCALES).index(time_scale) + index_shift
    position = min(max(position, 0), len(TIME_SCALES) - 1)
    target_scale = TIME_SCALES[position]

    row = _active_template.loc[_active_template["time_scale"] == target_scale]
    return str(row[kind].iloc[0])
