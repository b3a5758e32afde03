"""
Random survival forest wrapper.

This module provides:
- ModelConfig: one entry of the hyperparameter grid
- create_forest: configured scikit-survival estimator
- fit_survival_forest: fit and read back out-of-bag metric, hazards and
  variable importance
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from sksurv.ensemble import ExtraSurvivalTrees, RandomSurvivalForest

from .config import (
    RANDOM_STATE, N_JOBS, N_ESTIMATORS_FINAL, N_SPLIT_RANDOM,
    SPLITTERS, IMPORTANCE_REPEATS
)
from .optimization import harrell_cindex


def derive_n_split(splitter: str, n_split_random: int = N_SPLIT_RANDOM) -> int:
    """
    Number of candidate split points recorded for a split policy.

    0 means every observed value is a candidate ("best"); the "random"
    policy records ``n_split_random``.
    """
    if splitter not in SPLITTERS:
        raise ValueError(f"Unknown splitter {splitter!r}, expected one of {SPLITTERS}")
    return 0 if splitter == "best" else int(n_split_random)


@dataclass(frozen=True)
class ModelConfig:
    """One row of the hyperparameter grid."""
    max_features: Union[int, float, str]
    min_samples_leaf: int
    splitter: str = "best"
    n_split: Optional[int] = None

    def __post_init__(self):
        if self.n_split is None:
            object.__setattr__(self, "n_split", derive_n_split(self.splitter))
        elif self.splitter not in SPLITTERS:
            raise ValueError(f"Unknown splitter {self.splitter!r}, expected one of {SPLITTERS}")
        elif self.splitter == "best" and self.n_split != 0:
            raise ValueError(f"splitter='best' requires n_split=0, got {self.n_split}")
        elif self.splitter == "random" and self.n_split < 1:
            raise ValueError(f"splitter='random' requires n_split >= 1, got {self.n_split}")

    @classmethod
    def from_row(cls, row) -> "ModelConfig":
        """Build from a grid row (dict or pd.Series)."""
        max_features = row["max_features"]
        if isinstance(max_features, (np.integer, np.floating)):
            max_features = max_features.item()
        return cls(
            max_features=max_features,
            min_samples_leaf=int(row["min_samples_leaf"]),
            splitter=str(row["splitter"]),
            n_split=int(row["n_split"]) if "n_split" in row else None,
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ForestFit:
    """
    Read-only view of a fitted forest.

    Attributes
    ----------
    model : RandomSurvivalForest or ExtraSurvivalTrees
        Fitted estimator
    config : ModelConfig
        Configuration the forest was fitted with
    feature_names : List[str]
        Training columns, in order
    times : np.ndarray
        Ordered timepoints of the hazard grid
    oob_score : float
        Out-of-bag Harrell C-index reported by the estimator
    oob_hazard : np.ndarray or None
        Out-of-bag hazard increments (n_subjects, n_times); NaN rows for
        subjects that were in-bag for every tree. None when the fit was
        made without out-of-bag read-back.
    oob_risk : np.ndarray or None
        Out-of-bag risk score per subject
    importance : pd.Series or None
        Permutation importance per feature, sorted descending
    """
    model: Any
    config: ModelConfig
    feature_names: List[str]
    times: np.ndarray
    oob_score: float
    oob_hazard: Optional[np.ndarray]
    oob_risk: Optional[np.ndarray]
    importance: Optional[pd.Series] = None


def create_forest(
    config: ModelConfig,
    n_estimators: int = N_ESTIMATORS_FINAL,
    n_jobs: int = N_JOBS,
    random_state: int = RANDOM_STATE
):
    """
    Create a survival forest for one configuration.

    "best" searches all thresholds (RandomSurvivalForest); "random" draws
    thresholds at random (ExtraSurvivalTrees). Both bootstrap so that
    out-of-bag estimates exist.
    """
    model_class = RandomSurvivalForest if config.splitter == "best" else ExtraSurvivalTrees

    return model_class(
        n_estimators=n_estimators,
        max_features=config.max_features,
        min_samples_leaf=config.min_samples_leaf,
        bootstrap=True,
        oob_score=True,
        random_state=random_state,
        n_jobs=n_jobs,
    )


def forest_time_grid(forest) -> np.ndarray:
    """Timepoints indexing the forest's cumulative hazard arrays."""
    times = getattr(forest, "unique_times_", None)
    if times is None:
        # older scikit-survival releases
        times = forest.event_times_
    return np.asarray(times, dtype=float)


def oob_masks(forest, n_samples: int) -> np.ndarray:
    """
    Boolean matrix (n_trees, n_samples), True where a subject was left out
    of that tree's bootstrap sample.
    """
    masks = np.ones((len(forest.estimators_), n_samples), dtype=bool)

    for k, in_bag in enumerate(forest.estimators_samples_):
        masks[k, in_bag] = False

    return masks


def oob_cumulative_hazard(forest, X: np.ndarray, masks: np.ndarray) -> np.ndarray:
    """
    Ensemble cumulative hazard per subject, averaged over the trees for
    which the subject is out-of-bag.

    Returns
    -------
    np.ndarray
        (n_samples, n_times) on ``forest_time_grid(forest)``; NaN rows for
        subjects never out-of-bag
    """
    n_times = len(forest_time_grid(forest))
    total = np.zeros((X.shape[0], n_times))
    counts = masks.sum(axis=0)

    for estimator, mask in zip(forest.estimators_, masks):
        if not mask.any():
            continue
        chf = estimator.predict_cumulative_hazard_function(X[mask], return_array=True)
        if chf.shape[1] != n_times:
            raise ValueError(
                f"Tree time grid has {chf.shape[1]} points, forest has {n_times}"
            )
        total[mask] += chf

    with np.errstate(invalid="ignore", divide="ignore"):
        return total / counts[:, None]


def oob_risk_scores(forest, X: np.ndarray, masks: np.ndarray) -> np.ndarray:
    """Out-of-bag ensemble risk score (NaN for subjects never out-of-bag)."""
    total = np.zeros(X.shape[0])
    counts = masks.sum(axis=0)

    for estimator, mask in zip(forest.estimators_, masks):
        if mask.any():
            total[mask] += estimator.predict(X[mask])

    with np.errstate(invalid="ignore", divide="ignore"):
        return total / counts


def oob_permutation_importance(
    forest,
    X: np.ndarray,
    time: np.ndarray,
    event: np.ndarray,
    feature_names: List[str],
    masks: Optional[np.ndarray] = None,
    n_repeats: int = IMPORTANCE_REPEATS,
    random_state: int = RANDOM_STATE
) -> pd.Series:
    """
    Compute permutation importance on out-of-bag predictions.

    Measures the drop in out-of-bag Harrell C-index when each feature is
    permuted.

    Parameters
    ----------
    forest : fitted forest
        Survival forest with ``estimators_``
    X : np.ndarray
        Training matrix the forest was fitted on
    time, event : np.ndarray
        Training outcome
    feature_names : List[str]
        Column names of ``X``
    masks : np.ndarray, optional
        Out-of-bag masks (computed if not given)
    n_repeats : int
        Number of permutations per feature
    random_state : int
        Random state

    Returns
    -------
    pd.Series
        Feature importances (C-index drop), sorted descending
    """
    rng = np.random.RandomState(random_state)
    if masks is None:
        masks = oob_masks(forest, X.shape[0])

    base_score = harrell_cindex(time, event, oob_risk_scores(forest, X, masks))
    importances = {}

    for j, col in enumerate(feature_names):
        drops = []
        for _ in range(n_repeats):
            X_perm = X.copy()
            X_perm[:, j] = rng.permutation(X_perm[:, j])
            risk = oob_risk_scores(forest, X_perm, masks)
            drops.append(base_score - harrell_cindex(time, event, risk))

        importances[col] = float(np.mean(drops))

    return pd.Series(importances, name="importance").sort_values(
        ascending=False, kind="mergesort"
    )


def fit_survival_forest(
    X: Union[pd.DataFrame, np.ndarray],
    time: np.ndarray,
    event: np.ndarray,
    config: ModelConfig,
    n_estimators: int = N_ESTIMATORS_FINAL,
    n_jobs: int = N_JOBS,
    importance: bool = False,
    random_state: int = RANDOM_STATE,
    feature_names: Optional[List[str]] = None,
    oob_details: bool = True
) -> ForestFit:
    """
    Fit a survival forest and read back its out-of-bag quantities.

    Parameters
    ----------
    X : pd.DataFrame or np.ndarray
        Training features
    time : np.ndarray
        Observed times
    event : np.ndarray
        Censoring indicator
    config : ModelConfig
        Sampling width, leaf size and split policy
    n_estimators : int
        Number of trees
    n_jobs : int
        Worker count passed to the estimator
    importance : bool
        Compute permutation variable importance
    random_state : int
        Random state
    feature_names : List[str], optional
        Column names when ``X`` is an array
    oob_details : bool
        Read back per-subject out-of-bag hazards and risk. When False only
        the estimator's OOB score is kept (used by the sweep).

    Returns
    -------
    ForestFit
    """
    from .evaluation import to_sksurv_y

    if feature_names is None:
        feature_names = (
            list(X.columns) if isinstance(X, pd.DataFrame)
            else [f"x{j}" for j in range(np.shape(X)[1])]
        )
    X_arr = np.asarray(X, dtype=np.float32)
    y = to_sksurv_y(time, event)

    forest = create_forest(config, n_estimators=n_estimators, n_jobs=n_jobs,
                           random_state=random_state)
    forest.fit(X_arr, y)

    masks = None
    if oob_details or importance:
        masks = oob_masks(forest, X_arr.shape[0])

    hazard = risk = None
    if oob_details:
        chf = oob_cumulative_hazard(forest, X_arr, masks)
        hazard = np.diff(chf, axis=1, prepend=0.0)
        risk = oob_risk_scores(forest, X_arr, masks)

    vimp = None
    if importance:
        vimp = oob_permutation_importance(
            forest, X_arr, time, event, feature_names,
            masks=masks, random_state=random_state,
        )

    return ForestFit(
        model=forest,
        config=config,
        feature_names=list(feature_names),
        times=forest_time_grid(forest),
        oob_score=float(forest.oob_score_),
        oob_hazard=hazard,
        oob_risk=risk,
        importance=vimp,
    )
