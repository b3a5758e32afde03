"""
Visualization utilities for survival analysis.
"""
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Optional, Dict

from sksurv.nonparametric import kaplan_meier_estimator

from .config import TARGET_TIME, TARGET_EVENT, STRATUM_COL, TOP_N_IMPORTANCE
from .evaluation import SCORE_COL


def plot_survival_distribution(
    df: pd.DataFrame,
    figsize: tuple = (12, 5),
    bins: int = 40
) -> plt.Figure:
    """
    Plot distribution of survival times, split by event status.

    Parameters
    ----------
    df : pd.DataFrame
        Dataframe with time and event columns
    figsize : tuple
        Figure size
    bins : int
        Number of histogram bins

    Returns
    -------
    plt.Figure
        Matplotlib figure
    """
    fig, axes = plt.subplots(1, 2, figsize=figsize)

    # Overall distribution
    ax = axes[0]
    df[TARGET_TIME].hist(bins=bins, ax=ax, edgecolor='white', alpha=0.7)
    ax.set_title("Distribution of follow-up time (all subjects)")
    ax.set_xlabel(TARGET_TIME)
    ax.set_ylabel("Count")

    # By event status
    ax = axes[1]
    df.loc[df[TARGET_EVENT] == 1, TARGET_TIME].hist(
        bins=bins, alpha=0.6, label="Event (1)", ax=ax, color='red'
    )
    df.loc[df[TARGET_EVENT] == 0, TARGET_TIME].hist(
        bins=bins, alpha=0.6, label="Censored (0)", ax=ax, color='blue'
    )
    ax.set_title("Follow-up time: Event vs Censored")
    ax.set_xlabel(TARGET_TIME)
    ax.set_ylabel("Count")
    ax.legend()

    plt.tight_layout()
    return fig


def plot_stratified_km(
    df: pd.DataFrame,
    stratum_col: str = STRATUM_COL,
    figsize: tuple = (10, 6)
) -> plt.Figure:
    """
    Kaplan-Meier curves, one per level of a stratifying covariate.

    Parameters
    ----------
    df : pd.DataFrame
        Dataframe with time, event and stratum columns
    stratum_col : str
        Stratifying covariate
    figsize : tuple
        Figure size

    Returns
    -------
    plt.Figure
        Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    for level in sorted(df[stratum_col].dropna().unique()):
        subset = df[df[stratum_col] == level]
        time, surv = kaplan_meier_estimator(
            subset[TARGET_EVENT].astype(bool).to_numpy(),
            subset[TARGET_TIME].astype(float).to_numpy(),
        )
        ax.step(time, surv, where="post", label=f"{stratum_col} = {level} (n={len(subset)})")

    ax.set_xlabel(TARGET_TIME)
    ax.set_ylabel("Survival Probability")
    ax.set_title(f"Kaplan-Meier Survival by {stratum_col}")
    ax.set_ylim(0, 1.02)
    ax.grid(True, alpha=0.3)
    ax.legend()

    plt.tight_layout()
    return fig


def plot_feature_importance(
    importances: pd.Series,
    top_n: int = TOP_N_IMPORTANCE,
    figsize: tuple = (10, 6),
    title: str = "Variable Importance (OOB C-index drop)"
) -> plt.Figure:
    """
    Plot feature importance as horizontal bar chart.

    Parameters
    ----------
    importances : pd.Series
        Feature importances (index=feature name, value=importance)
    top_n : int
        Number of top features to show
    figsize : tuple
        Figure size
    title : str
        Plot title

    Returns
    -------
    plt.Figure
        Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    top_imp = importances.head(top_n).iloc[::-1]  # Reverse for horizontal bars
    colors = plt.cm.RdYlGn_r(np.linspace(0.2, 0.8, len(top_imp)))

    ax.barh([str(i) for i in top_imp.index], top_imp.values, color=colors)
    ax.set_xlabel("Score Drop (higher = more important)")
    ax.set_title(title)
    ax.axvline(x=0, color='black', linewidth=0.5)

    plt.tight_layout()
    return fig


def plot_oob_grid(
    results: pd.DataFrame,
    score_col: str = SCORE_COL,
    figsize: tuple = (10, 6),
    title: str = "Hyperparameter Sweep (OOB C-index)"
) -> plt.Figure:
    """
    Plot the out-of-bag score of every grid configuration.

    Parameters
    ----------
    results : pd.DataFrame
        Output of tune_survival_forest
    score_col : str
        Score column
    figsize : tuple
        Figure size
    title : str
        Plot title

    Returns
    -------
    plt.Figure
        Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    labels = [
        f"mf={r.max_features} leaf={r.min_samples_leaf} {r.splitter}"
        for r in results.itertuples()
    ]
    scores = results[score_col].to_numpy(dtype=float)
    colors = np.where(results["splitter"] == "best", "steelblue", "darkorange")

    ax.bar(range(len(scores)), scores, color=colors)
    ax.set_xticks(range(len(scores)))
    ax.set_xticklabels(labels, rotation=60, ha='right', fontsize=8)
    ax.set_ylabel("OOB C-index")
    ax.set_title(title)

    finite = scores[np.isfinite(scores)]
    if len(finite):
        ax.set_ylim(max(0.0, finite.min() - 0.05), min(1.0, finite.max() + 0.05))
    ax.axhline(y=0.5, color='gray', linestyle='--', alpha=0.5)

    plt.tight_layout()
    return fig


def plot_predicted_survival(
    survival_long: pd.DataFrame,
    subjects: pd.DataFrame,
    labels: Optional[Dict] = None,
    figsize: tuple = (10, 6),
    title: str = "Predicted OOB Survival: extremal subjects"
) -> plt.Figure:
    """
    Plot predicted survival curves for selected subjects.

    Parameters
    ----------
    survival_long : pd.DataFrame
        Long survival table (subject, time, survival)
    subjects : pd.DataFrame
        Output of select_extremal_subjects
    labels : Dict, optional
        subject -> legend label. Built from ``subjects`` if omitted.
    figsize : tuple
        Figure size
    title : str
        Plot title

    Returns
    -------
    plt.Figure
        Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    if labels is None:
        labels = {
            r.subject: f"stratum={r.stratum}, {r.extreme} ({r.subject})"
            for r in subjects.itertuples()
        }

    linestyles = {"min": "--", "max": "-"}
    for r in subjects.itertuples():
        curve = survival_long[survival_long["subject"] == r.subject]
        ax.step(
            curve["time"], curve["survival"], where="post",
            linestyle=linestyles.get(r.extreme, "-"),
            label=labels.get(r.subject, str(r.subject)),
        )

    ax.set_xlabel(TARGET_TIME)
    ax.set_ylabel("Survival Probability")
    ax.set_title(title)
    ax.set_ylim(0, 1.02)
    ax.grid(True, alpha=0.3)
    ax.legend()

    plt.tight_layout()
    return fig
