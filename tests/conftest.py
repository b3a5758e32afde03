import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from brca_rsf.config import ID_COL, TARGET_TIME, TARGET_EVENT
from brca_rsf.data_loader import build_survival_data, clean_target

N_SUBJECTS = 80
N_GENES = 8


def make_snapshot(n=N_SUBJECTS, n_genes=N_GENES, seed=0) -> pd.DataFrame:
    """Synthetic expression snapshot where G0 drives the hazard."""
    rng = np.random.RandomState(seed)
    genes = pd.DataFrame(
        rng.normal(size=(n, n_genes)),
        columns=[f"G{j}" for j in range(n_genes)],
    )
    event_time = rng.exponential(scale=np.exp(-genes["G0"].to_numpy())) * 10 + 0.1
    censor_time = rng.uniform(5, 40, size=n)

    df = pd.DataFrame({
        ID_COL: [f"S{i:03d}" for i in range(n)],
        TARGET_TIME: np.minimum(event_time, censor_time),
        TARGET_EVENT: (event_time <= censor_time).astype(int),
        "ER": np.tile([0, 1], n // 2),
        "Age": rng.randint(30, 70, size=n),
    })
    # both strata need observed events
    df.loc[:3, TARGET_EVENT] = 1
    return pd.concat([df, genes], axis=1)


@pytest.fixture
def snapshot_df():
    return make_snapshot()


@pytest.fixture
def snapshot_csv(tmp_path, snapshot_df):
    path = tmp_path / "snapshot.csv"
    snapshot_df.to_csv(path, index=False)
    return path


@pytest.fixture
def reference_txt(tmp_path):
    path = tmp_path / "reference_genes.txt"
    path.write_text("gene\nG7\nG6\nG7\nNOT_MEASURED\n")
    return path


@pytest.fixture
def survival_data(snapshot_df):
    df = clean_target(snapshot_df.set_index(ID_COL))
    return build_survival_data(df, covariate_cols=["ER", "Age"])
