"""
Configuration and constants for the breast-cancer survival forest analysis.
"""
from pathlib import Path
from typing import Dict, List

# =========================================================
# Paths
# =========================================================
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "results"

# Data files
SNAPSHOT_PATH = DATA_DIR / "brca_expression.pkl"
REFERENCE_GENES_PATH = DATA_DIR / "reference_genes.txt"

# =========================================================
# Column names
# =========================================================
ID_COL = "ID"
TARGET_TIME = "time"
TARGET_EVENT = "event"

# Binary covariate used to stratify survival curves
STRATUM_COL = "ER"

# Clinical covariates (never screened, never fed to the forest)
CLINICAL_COLS: List[str] = [
    "Diam",   # Tumour diameter
    "N",      # Number of affected lymph nodes
    "ER",     # Estrogen receptor status
    "Grade",  # Tumour grade
    "Age",    # Age at diagnosis
]

# =========================================================
# Model parameters
# =========================================================
RANDOM_STATE = 42
N_JOBS = -1

# Feature screening
TOP_K_GENES = 50    # Genes kept from the univariate Cox ranking

# Random survival forest
N_ESTIMATORS_TUNING = 200
N_ESTIMATORS_FINAL = 1000

# Split count recorded for the "random" split policy
N_SPLIT_RANDOM = 10

SPLITTERS = ("best", "random")

# Hyperparameter grid for the out-of-bag sweep
# 3×3×2 = 18 configurations, one forest each (no CV folds needed)
RSF_PARAM_GRID: Dict[str, list] = {
    "max_features": [0.1, 0.25, 0.5],   # Sampling width (fraction of features)
    "min_samples_leaf": [5, 10, 20],    # Minimum terminal node size
    "splitter": ["best", "random"],
}

# =========================================================
# Reporting
# =========================================================
TOP_N_IMPORTANCE = 20
IMPORTANCE_REPEATS = 1
