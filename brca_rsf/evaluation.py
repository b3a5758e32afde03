"""
Evaluation and hyperparameter tuning for survival forests.

This module provides:
- Survival data format conversion for scikit-survival
- Cartesian hyperparameter grid construction
- Out-of-bag sweep over the grid and best-configuration selection
"""
import numpy as np
import pandas as pd
from itertools import product
from typing import Tuple, Optional, Dict, Any, List

from .config import (
    RANDOM_STATE, N_JOBS, N_ESTIMATORS_TUNING, N_SPLIT_RANDOM, RSF_PARAM_GRID
)
from .data_loader import SurvivalData
from .models import ModelConfig, derive_n_split, fit_survival_forest

SCORE_COL = "oob_cindex"
GRID_COLS = ["max_features", "min_samples_leaf", "splitter", "n_split"]


def to_sksurv_y(time: np.ndarray, event: np.ndarray) -> np.ndarray:
    """
    Convert outcome arrays to scikit-survival structured array.

    Parameters
    ----------
    time : np.ndarray
        Observed times
    event : np.ndarray
        Censoring indicator (1 = event)

    Returns
    -------
    np.ndarray
        Structured array with ('event', 'time') dtype
    """
    event = np.asarray(event).astype(int) == 1
    time = np.asarray(time).astype(float)
    return np.array(list(zip(event, time)), dtype=[("event", "bool"), ("time", "f8")])


def build_param_grid(
    param_grid: Optional[Dict[str, List[Any]]] = None,
    n_split_random: int = N_SPLIT_RANDOM
) -> pd.DataFrame:
    """
    Enumerate the Cartesian product of a parameter grid.

    Rows follow ``itertools.product`` order over (max_features,
    min_samples_leaf, splitter); ``n_split`` is derived from the splitter.

    Parameters
    ----------
    param_grid : Dict[str, List[Any]], optional
        Keys max_features, min_samples_leaf, splitter. Defaults to config.
    n_split_random : int
        Split count recorded for the "random" policy

    Returns
    -------
    pd.DataFrame
        One row per configuration
    """
    param_grid = param_grid or RSF_PARAM_GRID
    names = ["max_features", "min_samples_leaf", "splitter"]
    missing = [n for n in names if n not in param_grid]
    if missing:
        raise ValueError(f"Parameter grid is missing keys: {missing}")

    rows = []
    for max_features, leaf, splitter in product(*(param_grid[n] for n in names)):
        rows.append({
            "max_features": max_features,
            "min_samples_leaf": int(leaf),
            "splitter": splitter,
            "n_split": derive_n_split(splitter, n_split_random),
        })

    if not rows:
        raise ValueError("Parameter grid is empty")

    # object dtype keeps mixed "sqrt"/int/float sampling widths intact
    grid = pd.DataFrame(rows, columns=GRID_COLS)
    grid["max_features"] = grid["max_features"].astype(object)
    return grid


def tune_survival_forest(
    data: SurvivalData,
    grid: Optional[pd.DataFrame] = None,
    n_estimators: int = N_ESTIMATORS_TUNING,
    n_jobs: int = N_JOBS,
    random_state: int = RANDOM_STATE,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Fit one forest per grid row and record its out-of-bag C-index.

    Configurations are evaluated independently and in row order; the
    forest itself parallelizes over trees.

    Parameters
    ----------
    data : SurvivalData
        Training set (already screened)
    grid : pd.DataFrame, optional
        Output of build_param_grid. Defaults to the config grid.
    n_estimators : int
        Trees per forest
    n_jobs : int
        Worker count passed to the estimator
    random_state : int
        Random state
    verbose : bool
        Print progress

    Returns
    -------
    pd.DataFrame
        Copy of ``grid`` with an ``oob_cindex`` column aligned to its rows
    """
    grid = build_param_grid() if grid is None else grid
    n_combinations = len(grid)

    if verbose:
        print(f"Grid Search: {n_combinations} param combinations × 1 OOB fit, "
              f"{n_estimators} trees each")

    scores = []
    for i, (_, row) in enumerate(grid.iterrows()):
        config = ModelConfig.from_row(row)
        fit = fit_survival_forest(
            data.features, data.time, data.event, config,
            n_estimators=n_estimators, n_jobs=n_jobs,
            importance=False, random_state=random_state,
            oob_details=False,
        )
        scores.append(fit.oob_score)

        if verbose:
            print(f"[{i+1}/{n_combinations}] {config.as_dict()} -> OOB: {fit.oob_score:.4f}")

    results = grid.copy()
    results[SCORE_COL] = scores
    return results


def select_best_config(
    results: pd.DataFrame,
    score_col: str = SCORE_COL
) -> Tuple[ModelConfig, float]:
    """
    Pick the configuration with the highest recorded score.

    On an exact tie the first maximum in row order wins. NaN scores never
    win.

    Returns
    -------
    Tuple[ModelConfig, float]
        (best_config, best_score)
    """
    best_row = None
    best_score = -np.inf

    for _, row in results.iterrows():
        score = float(row[score_col])
        if score > best_score:
            best_score = score
            best_row = row

    if best_row is None:
        raise ValueError("No configuration has a finite score")

    return ModelConfig.from_row(best_row), best_score
