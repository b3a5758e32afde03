"""
Data loading and validation utilities.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from .config import (
    SNAPSHOT_PATH, REFERENCE_GENES_PATH, CLINICAL_COLS,
    ID_COL, TARGET_TIME, TARGET_EVENT
)
from .errors import InputDataError


@dataclass(frozen=True)
class SurvivalData:
    """
    Observation set threaded through the pipeline stages.

    All members share the same subject ordering. Stages never mutate a
    record; they build a new one (see ``select``).

    Attributes
    ----------
    features : pd.DataFrame
        Gene-expression matrix (subjects x genes)
    time : np.ndarray
        Observed times
    event : np.ndarray
        Censoring indicator (1 = event observed, 0 = censored)
    covariates : pd.DataFrame
        Clinical covariates, same index as ``features``
    """
    features: pd.DataFrame
    time: np.ndarray
    event: np.ndarray
    covariates: pd.DataFrame

    def __post_init__(self):
        n = len(self.features)
        if len(self.time) != n or len(self.event) != n:
            raise InputDataError(
                f"Misaligned observation set: {n} feature rows, "
                f"{len(self.time)} times, {len(self.event)} events"
            )
        if len(self.covariates) != n or not self.covariates.index.equals(self.features.index):
            raise InputDataError("Covariates are not aligned with the feature matrix")
        if n == 0:
            raise InputDataError("Observation set is empty")

    @property
    def n_subjects(self) -> int:
        return len(self.features)

    @property
    def feature_names(self) -> List[str]:
        return list(self.features.columns)

    @property
    def subject_ids(self) -> pd.Index:
        return self.features.index

    def select(self, columns: List[str]) -> "SurvivalData":
        """Return a new record restricted to ``columns`` (in that order)."""
        missing = [c for c in columns if c not in self.features.columns]
        if missing:
            raise InputDataError(f"Unknown feature columns: {missing[:5]}")
        return SurvivalData(
            features=self.features[list(columns)].copy(),
            time=self.time,
            event=self.event,
            covariates=self.covariates,
        )

    def to_sksurv_y(self) -> np.ndarray:
        from .evaluation import to_sksurv_y
        return to_sksurv_y(self.time, self.event)

    def outcome_frame(self) -> pd.DataFrame:
        """Covariates plus time and event columns, indexed by subject."""
        out = self.covariates.copy()
        out[TARGET_TIME] = self.time
        out[TARGET_EVENT] = self.event
        return out


_SNAPSHOT_READERS = {
    ".pkl": pd.read_pickle,
    ".pickle": pd.read_pickle,
    ".csv": pd.read_csv,
    ".tsv": lambda p: pd.read_csv(p, sep="\t"),
}


def load_snapshot(path: Optional[Path] = None) -> pd.DataFrame:
    """
    Load the serialized data snapshot.

    Supported formats are pandas pickle (.pkl, .pickle) and
    delimited text (.csv, .tsv). If an ``ID`` column is present it becomes
    the index.

    Parameters
    ----------
    path : Path, optional
        Path to the snapshot. Defaults to config path.

    Returns
    -------
    pd.DataFrame
        One row per subject
    """
    path = Path(path or SNAPSHOT_PATH)
    if not path.is_file():
        raise InputDataError(f"Snapshot not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in _SNAPSHOT_READERS:
        raise InputDataError(f"Unsupported snapshot format: {suffix!r}")

    try:
        df = _SNAPSHOT_READERS[suffix](path)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise InputDataError(f"Could not read snapshot {path}: {e}") from e

    if not isinstance(df, pd.DataFrame):
        raise InputDataError(f"Snapshot {path} does not hold a data frame")

    if ID_COL in df.columns:
        df = df.set_index(ID_COL)
    return df


def load_reference_genes(path: Optional[Path] = None) -> List[str]:
    """
    Load the fixed reference gene list.

    One identifier per row, header row present. Only the first column is
    used; blanks and repeated identifiers are dropped (first kept).
    """
    path = Path(path or REFERENCE_GENES_PATH)
    if not path.is_file():
        raise InputDataError(f"Reference gene list not found: {path}")

    try:
        genes = pd.read_csv(path, sep="\t|,", engine="python").iloc[:, 0]
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise InputDataError(f"Could not read reference gene list {path}: {e}") from e

    genes = genes.dropna().astype(str).str.strip()
    genes = genes[genes != ""]
    return genes.drop_duplicates().tolist()


def clean_target(df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean target columns: drop NaN, cast types.

    Parameters
    ----------
    df : pd.DataFrame
        Dataframe with time and event columns

    Returns
    -------
    pd.DataFrame
        Cleaned dataframe
    """
    missing = [c for c in (TARGET_TIME, TARGET_EVENT) if c not in df.columns]
    if missing:
        raise InputDataError(f"Snapshot is missing outcome columns: {missing}")

    df = df.dropna(subset=[TARGET_EVENT, TARGET_TIME]).copy()

    # checked before the int cast so that 0.7 is not truncated to 0
    events = df[TARGET_EVENT]
    bad_events = events[~events.isin([0, 1])].unique()
    if len(bad_events):
        raise InputDataError(
            f"Censoring indicator must be 0/1, got {sorted(bad_events.tolist(), key=str)}"
        )

    df[TARGET_EVENT] = events.astype(int)
    df[TARGET_TIME] = df[TARGET_TIME].astype(float)
    return df


def validate_data(
    df: pd.DataFrame,
    covariate_cols: Optional[List[str]] = None
) -> dict:
    """
    Perform sanity checks on the data.

    Returns
    -------
    dict
        Validation results with keys:
        - n_subjects: int
        - n_features: int
        - duplicated_ids: int
        - event_rate: float
        - censoring_rate: float
        - zero_variance_features: list of gene columns with no variance
    """
    from .features import get_feature_columns

    covariate_cols = CLINICAL_COLS if covariate_cols is None else covariate_cols
    feature_cols = get_feature_columns(df, exclude_cols=covariate_cols)

    results = {}
    results["n_subjects"] = len(df)
    results["n_features"] = len(feature_cols)
    results["duplicated_ids"] = int(df.index.duplicated().sum())

    results["event_rate"] = float(df[TARGET_EVENT].mean())
    results["censoring_rate"] = 1 - results["event_rate"]

    std = df[feature_cols].std(ddof=0)
    results["zero_variance_features"] = std.index[~(std > 0)].tolist()

    return results


def build_survival_data(
    df: pd.DataFrame,
    covariate_cols: Optional[List[str]] = None
) -> SurvivalData:
    """
    Split a cleaned snapshot into a SurvivalData record.

    Gene columns are every column except the outcome and the clinical
    covariates. Covariates absent from the snapshot are ignored.
    """
    from .features import get_feature_columns

    covariate_cols = CLINICAL_COLS if covariate_cols is None else covariate_cols
    covariate_cols = [c for c in covariate_cols if c in df.columns]
    feature_cols = get_feature_columns(df, exclude_cols=covariate_cols)
    if not feature_cols:
        raise InputDataError("Snapshot contains no feature columns")

    non_numeric = [c for c in feature_cols if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise InputDataError(f"Non-numeric feature columns: {non_numeric[:5]}")

    return SurvivalData(
        features=df[feature_cols].astype(float),
        time=df[TARGET_TIME].to_numpy(dtype=float),
        event=df[TARGET_EVENT].to_numpy(dtype=int),
        covariates=df[covariate_cols].copy(),
    )


def load_survival_data(
    path: Optional[Path] = None,
    covariate_cols: Optional[List[str]] = None
) -> SurvivalData:
    """Load, clean and split the snapshot in one call."""
    df = clean_target(load_snapshot(path))
    return build_survival_data(df, covariate_cols=covariate_cols)
