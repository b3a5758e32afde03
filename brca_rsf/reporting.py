"""
Post-fit reporting: survival curves, extremal subjects, importance tables.
"""
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .config import TARGET_EVENT, STRATUM_COL, TOP_N_IMPORTANCE
from .errors import EmptySelectionError, InputDataError
from .optimization import fast_survival_from_hazard


def cumulative_hazard_to_survival(hazard) -> np.ndarray:
    """
    Survival probability grid from a per-timepoint hazard grid.

    Parameters
    ----------
    hazard : array-like
        Hazard increments (n_subjects, n_times), columns in time order

    Returns
    -------
    np.ndarray
        exp(-cumulative hazard), same shape; non-finite inputs give NaN
    """
    hazard = np.ascontiguousarray(hazard, dtype=np.float64)
    if hazard.ndim != 2:
        raise ValueError(f"Hazard grid must be 2-D, got shape {hazard.shape}")
    return fast_survival_from_hazard(hazard)


def survival_long_frame(
    survival: np.ndarray,
    times: Sequence[float],
    subject_ids: Optional[Sequence] = None
) -> pd.DataFrame:
    """
    Reshape a wide survival grid into (subject, time, survival) rows.

    Rows are subject-major in the input subject order, times ascending
    within a subject.
    """
    survival = np.asarray(survival, dtype=float)
    times = np.asarray(times, dtype=float)
    if survival.shape[1] != len(times):
        raise ValueError(
            f"Survival grid has {survival.shape[1]} columns but {len(times)} timepoints"
        )
    if subject_ids is None:
        subject_ids = np.arange(survival.shape[0])

    wide = pd.DataFrame(survival, columns=times)
    wide.insert(0, "subject", list(subject_ids))

    long = wide.melt(id_vars="subject", var_name="time", value_name="survival")
    # melt is time-major; restore subject-major order
    order = np.tile(np.arange(survival.shape[0]), len(times))
    long = long.iloc[np.argsort(order, kind="mergesort")].reset_index(drop=True)
    long["time"] = long["time"].astype(float)
    return long


def select_extremal_subjects(
    frame: pd.DataFrame,
    rank_col: str,
    stratum_col: str = STRATUM_COL,
    event_col: str = TARGET_EVENT,
    event_value: int = 1,
    levels: Optional[Sequence] = None
) -> pd.DataFrame:
    """
    Subjects with the lowest and highest ``rank_col`` per stratum.

    For each stratum level, only subjects with ``event_col == event_value``
    are considered. Ties go to the first subject in frame order.

    Parameters
    ----------
    frame : pd.DataFrame
        One row per subject, indexed by subject id
    rank_col : str
        Column to minimise / maximise
    stratum_col : str
        Binary stratifying covariate
    event_col : str
        Censoring indicator column
    event_value : int
        Required value of the censoring indicator
    levels : Sequence, optional
        Stratum levels to query. Defaults to the sorted observed levels,
        which must be exactly two.

    Returns
    -------
    pd.DataFrame
        Columns: stratum, extreme ('min'/'max'), subject, value
    """
    if levels is None:
        levels = sorted(frame[stratum_col].dropna().unique())
        if len(levels) != 2:
            raise InputDataError(
                f"Stratum {stratum_col!r} must have exactly two observed levels, got {list(levels)}"
            )

    rows = []
    for level in levels:
        subset = frame.loc[
            (frame[stratum_col] == level) & (frame[event_col] == event_value),
            rank_col,
        ].dropna()
        if subset.empty:
            raise EmptySelectionError(level, event_value)

        # idxmin/idxmax return the first occurrence on ties
        picks = (("min", subset.idxmin(), subset.min()), ("max", subset.idxmax(), subset.max()))
        for extreme, subject, value in picks:
            rows.append({
                "stratum": level,
                "extreme": extreme,
                "subject": subject,
                "value": float(value),
            })

    return pd.DataFrame(rows, columns=["stratum", "extreme", "subject", "value"])


def importance_table(importance: pd.Series, top_n: int = TOP_N_IMPORTANCE) -> pd.DataFrame:
    """Top-N variable importance as a ranked table."""
    top = importance.sort_values(ascending=False, kind="mergesort").head(top_n)
    return pd.DataFrame({
        "rank": np.arange(1, len(top) + 1),
        "feature": top.index,
        "importance": top.values,
    })
