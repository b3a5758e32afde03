# ============================================================
# run_analysis.py
# Univariate Cox screening + OOB-tuned random survival forest
# on the breast-cancer expression snapshot
# ============================================================
import warnings
warnings.filterwarnings("ignore")

import argparse
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np

from brca_rsf.config import (
    SNAPSHOT_PATH, REFERENCE_GENES_PATH, OUTPUT_DIR, STRATUM_COL,
    TOP_K_GENES, N_ESTIMATORS_TUNING, N_ESTIMATORS_FINAL, N_JOBS, RANDOM_STATE
)
from brca_rsf.pipeline import run_pipeline

np.random.seed(RANDOM_STATE)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Screen genes, tune and fit a random survival forest, write reports."
    )
    parser.add_argument("--snapshot", type=Path, default=SNAPSHOT_PATH,
                        help="Data snapshot (.pkl, .csv, .tsv)")
    parser.add_argument("--reference", type=Path, default=REFERENCE_GENES_PATH,
                        help="Reference gene list (one per row, with header)")
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR,
                        help="Directory for tables and figures")
    parser.add_argument("--stratum", default=STRATUM_COL,
                        help="Binary covariate used to stratify curves")
    parser.add_argument("--top-k", type=int, default=TOP_K_GENES)
    parser.add_argument("--n-estimators-tuning", type=int, default=N_ESTIMATORS_TUNING)
    parser.add_argument("--n-estimators", type=int, default=N_ESTIMATORS_FINAL)
    parser.add_argument("--n-jobs", type=int, default=N_JOBS)
    parser.add_argument("--seed", type=int, default=RANDOM_STATE)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    result = run_pipeline(
        snapshot_path=args.snapshot,
        reference_path=args.reference,
        output_dir=args.output,
        stratum_col=args.stratum,
        top_k=args.top_k,
        n_estimators_tuning=args.n_estimators_tuning,
        n_estimators_final=args.n_estimators,
        n_jobs=args.n_jobs,
        random_state=args.seed,
    )
    print(result.extremal.to_string(index=False))


if __name__ == "__main__":
    main()
