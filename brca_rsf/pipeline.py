"""
End-to-end analysis: load -> screen -> sweep -> final fit -> report.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import pandas as pd

from .config import (
    SNAPSHOT_PATH, REFERENCE_GENES_PATH, OUTPUT_DIR, CLINICAL_COLS,
    STRATUM_COL, TARGET_EVENT, TOP_K_GENES, N_ESTIMATORS_TUNING,
    N_ESTIMATORS_FINAL, N_JOBS, RANDOM_STATE, TOP_N_IMPORTANCE
)
from .data_loader import (
    load_snapshot, load_reference_genes, clean_target, validate_data,
    build_survival_data
)
from .evaluation import build_param_grid, tune_survival_forest, select_best_config
from .features import ScreeningResult, screen_features
from .models import ForestFit, ModelConfig, fit_survival_forest
from .reporting import (
    cumulative_hazard_to_survival, survival_long_frame,
    select_extremal_subjects, importance_table
)
from .visualization import (
    plot_survival_distribution, plot_stratified_km, plot_feature_importance,
    plot_oob_grid, plot_predicted_survival
)


@dataclass(frozen=True)
class PipelineResult:
    validation: dict
    screening: ScreeningResult
    grid_results: pd.DataFrame
    best_config: ModelConfig
    best_score: float
    fit: ForestFit
    survival_long: pd.DataFrame
    extremal: pd.DataFrame
    outputs: Dict[str, Path]


def header(title: str):
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def _save_figure(fig: plt.Figure, path: Path) -> Path:
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def run_pipeline(
    snapshot_path: Optional[Path] = None,
    reference_path: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    covariate_cols: Optional[List[str]] = None,
    stratum_col: str = STRATUM_COL,
    top_k: int = TOP_K_GENES,
    param_grid: Optional[dict] = None,
    n_estimators_tuning: int = N_ESTIMATORS_TUNING,
    n_estimators_final: int = N_ESTIMATORS_FINAL,
    n_jobs: int = N_JOBS,
    random_state: int = RANDOM_STATE,
    top_n_importance: int = TOP_N_IMPORTANCE,
    verbose: bool = True
) -> PipelineResult:
    """
    Run the full analysis and write tables and figures to ``output_dir``.

    The extremal-subject comparison ranks subjects by the expression of
    the most important gene, within each stratum among subjects with an
    observed event.
    """
    output_dir = Path(output_dir or OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    covariate_cols = CLINICAL_COLS if covariate_cols is None else covariate_cols
    outputs = {}

    # ---- Load
    if verbose:
        header("Load data")
    df = clean_target(load_snapshot(snapshot_path or SNAPSHOT_PATH))
    reference_genes = load_reference_genes(reference_path or REFERENCE_GENES_PATH)
    validation = validate_data(df, covariate_cols=covariate_cols)
    data = build_survival_data(df, covariate_cols=covariate_cols)

    if verbose:
        print(f"Subjects: {validation['n_subjects']} | features: {validation['n_features']} "
              f"| event rate: {validation['event_rate']:.3f} "
              f"| reference genes: {len(reference_genes)}")

    # ---- Screen
    if verbose:
        header("Feature screening")
    screening = screen_features(data, reference_genes, top_k=top_k, verbose=verbose)
    outputs["screening"] = output_dir / "screening_scores.csv"
    screening.scores.rename_axis("feature").to_csv(outputs["screening"])

    # ---- Sweep
    if verbose:
        header("Hyperparameter sweep (OOB)")
    grid = build_param_grid(param_grid)
    grid_results = tune_survival_forest(
        screening.data, grid, n_estimators=n_estimators_tuning,
        n_jobs=n_jobs, random_state=random_state, verbose=verbose,
    )
    best_config, best_score = select_best_config(grid_results)
    outputs["grid"] = output_dir / "grid_results.csv"
    grid_results.to_csv(outputs["grid"], index=False)

    if verbose:
        print(f"Best: {best_config.as_dict()} -> OOB: {best_score:.4f}")

    # ---- Final fit
    if verbose:
        header("Final forest")
    fit = fit_survival_forest(
        screening.data.features, screening.data.time, screening.data.event,
        best_config, n_estimators=n_estimators_final, n_jobs=n_jobs,
        importance=True, random_state=random_state,
    )
    if verbose:
        print(f"Final OOB C-index: {fit.oob_score:.4f} | timepoints: {len(fit.times)}")

    # ---- Report
    if verbose:
        header("Reporting")
    survival = cumulative_hazard_to_survival(fit.oob_hazard)
    survival_long = survival_long_frame(survival, fit.times, screening.data.subject_ids)
    outputs["survival"] = output_dir / "oob_survival_long.csv"
    survival_long.to_csv(outputs["survival"], index=False)

    vimp = importance_table(fit.importance, top_n=top_n_importance)
    outputs["importance"] = output_dir / "variable_importance.csv"
    vimp.to_csv(outputs["importance"], index=False)

    top_gene = fit.importance.index[0]
    frame = data.outcome_frame()
    frame[top_gene] = screening.data.features[top_gene]
    extremal = select_extremal_subjects(
        frame, rank_col=top_gene, stratum_col=stratum_col,
        event_col=TARGET_EVENT, event_value=1,
    )
    outputs["extremal"] = output_dir / "extremal_subjects.csv"
    extremal.to_csv(outputs["extremal"], index=False)

    outputs["fig_distribution"] = _save_figure(
        plot_survival_distribution(frame), output_dir / "survival_distribution.png"
    )
    outputs["fig_km"] = _save_figure(
        plot_stratified_km(frame, stratum_col=stratum_col), output_dir / "km_by_stratum.png"
    )
    outputs["fig_importance"] = _save_figure(
        plot_feature_importance(fit.importance, top_n=top_n_importance),
        output_dir / "variable_importance.png",
    )
    outputs["fig_grid"] = _save_figure(plot_oob_grid(grid_results), output_dir / "oob_grid.png")
    outputs["fig_predicted"] = _save_figure(
        plot_predicted_survival(
            survival_long, extremal,
            title=f"Predicted OOB Survival: extremal {top_gene} by {stratum_col}",
        ),
        output_dir / "predicted_survival.png",
    )

    if verbose:
        print(vimp.head(10).to_string(index=False))
        print(f"\nSaved outputs to: {output_dir}")

    return PipelineResult(
        validation=validation,
        screening=screening,
        grid_results=grid_results,
        best_config=best_config,
        best_score=best_score,
        fit=fit,
        survival_long=survival_long,
        extremal=extremal,
        outputs=outputs,
    )
