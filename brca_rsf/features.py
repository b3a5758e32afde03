# ============================================================
# brca_rsf/features.py
# ============================================================
"""
Feature screening for the gene-expression matrix.

Each gene is scored on its own with a univariate Cox regression; the
top-ranked genes are merged with a fixed reference gene list to form the
reduced matrix handed to the forest.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from lifelines import CoxPHFitter

from .config import ID_COL, TARGET_TIME, TARGET_EVENT, TOP_K_GENES
from .data_loader import SurvivalData
from .errors import DegenerateFeatureError


@dataclass(frozen=True)
class ScreeningResult:
    """
    Outcome of the screening stage.

    Attributes
    ----------
    scores : pd.Series
        Univariate Cox p-value per feature, in ranking order
    selected : List[str]
        Retained features (top-K first, then reference genes)
    data : SurvivalData
        Observation set restricted to ``selected``
    """
    scores: pd.Series
    selected: List[str]
    data: SurvivalData


def univariate_cox_pvalue(
    values: pd.Series,
    time: np.ndarray,
    event: np.ndarray
) -> float:
    """
    Wald p-value of a single-covariate Cox model.

    Raises DegenerateFeatureError when the feature has no variance
    (constant or entirely missing), where the partial likelihood is flat.
    """
    name = str(values.name)
    x = pd.to_numeric(values, errors="coerce").to_numpy(dtype=float)
    keep = np.isfinite(x)
    if keep.sum() < 2 or np.nanstd(x[keep]) == 0:
        raise DegenerateFeatureError(name)

    df = pd.DataFrame({
        "x": x[keep],
        "duration": np.asarray(time, dtype=float)[keep],
        "event": np.asarray(event, dtype=int)[keep],
    })
    cph = CoxPHFitter()
    cph.fit(df, duration_col="duration", event_col="event")
    return float(cph.summary.loc["x", "p"])


def univariate_cox_scores(
    features: pd.DataFrame,
    time: np.ndarray,
    event: np.ndarray,
    verbose: bool = False
) -> pd.Series:
    """
    Score every feature independently with a univariate Cox model.

    Parameters
    ----------
    features : pd.DataFrame
        Feature matrix (subjects x features)
    time : np.ndarray
        Observed times
    event : np.ndarray
        Censoring indicator
    verbose : bool
        Print progress

    Returns
    -------
    pd.Series
        p-value per feature, in column order (lower = stronger association)
    """
    scores = {}
    n = features.shape[1]
    for i, col in enumerate(features.columns):
        scores[col] = univariate_cox_pvalue(features[col], time, event)
        if verbose and (i + 1) % 100 == 0:
            print(f"  scored {i + 1}/{n} features")

    return pd.Series(scores, name="p_value", dtype=float)


def rank_features(scores: pd.Series) -> pd.Series:
    """
    Sort scores ascending. The sort is stable, so tied scores keep the
    original column order.
    """
    return scores.sort_values(ascending=True, kind="mergesort")


def select_features(
    ranked: pd.Series,
    reference_genes: Sequence[str],
    top_k: int = TOP_K_GENES,
    available: Optional[Sequence[str]] = None
) -> List[str]:
    """
    Union of the top-K ranked features and the reference genes.

    Top-K features come first in rank order, followed by reference genes
    not already selected, in reference order. Reference genes missing from
    ``available`` (defaults to the ranked index) are skipped.
    """
    if top_k < 0:
        raise ValueError(f"top_k must be non-negative, got {top_k}")

    available = set(ranked.index if available is None else available)

    selected = list(ranked.index[:top_k])
    seen = set(selected)
    for gene in reference_genes:
        if gene in available and gene not in seen:
            selected.append(gene)
            seen.add(gene)
    return selected


def screen_features(
    data: SurvivalData,
    reference_genes: Sequence[str],
    top_k: int = TOP_K_GENES,
    verbose: bool = True
) -> ScreeningResult:
    """
    Rank genes by univariate Cox p-value and keep top-K plus reference genes.

    Parameters
    ----------
    data : SurvivalData
        Full observation set
    reference_genes : Sequence[str]
        Genes always retained when present in the matrix
    top_k : int
        Number of top-ranked genes to keep
    verbose : bool
        Print progress

    Returns
    -------
    ScreeningResult
    """
    if verbose:
        print(f"Screening {len(data.feature_names)} features (univariate Cox)")

    scores = univariate_cox_scores(data.features, data.time, data.event, verbose=verbose)
    ranked = rank_features(scores)
    selected = select_features(ranked, reference_genes, top_k=top_k)

    if verbose:
        n_missing = len([g for g in reference_genes if g not in ranked.index])
        print(f"Selected {len(selected)} features "
              f"(top {min(top_k, len(ranked))} + reference; {n_missing} reference genes absent)")

    return ScreeningResult(scores=ranked, selected=selected, data=data.select(selected))


def get_feature_columns(
    df: pd.DataFrame,
    exclude_cols: Optional[List[str]] = None
) -> List[str]:
    """
    Get list of feature columns (excluding ID and target columns).
    """
    exclude = {ID_COL, TARGET_TIME, TARGET_EVENT}
    if exclude_cols:
        exclude.update(exclude_cols)

    return [c for c in df.columns if c not in exclude]
