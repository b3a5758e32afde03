import pandas as pd
import pytest

from brca_rsf.errors import InputDataError
from brca_rsf.evaluation import SCORE_COL
from brca_rsf.pipeline import run_pipeline

SMALL_GRID = {"max_features": [0.5], "min_samples_leaf": [5], "splitter": ["best", "random"]}


@pytest.fixture(scope="module")
def result(tmp_path_factory):
    from tests.conftest import make_snapshot
    tmp = tmp_path_factory.mktemp("pipeline")
    snapshot = tmp / "snapshot.csv"
    make_snapshot().to_csv(snapshot, index=False)
    reference = tmp / "reference.txt"
    reference.write_text("gene\nG7\nG6\nNOT_MEASURED\n")

    return run_pipeline(
        snapshot_path=snapshot,
        reference_path=reference,
        output_dir=tmp / "out",
        covariate_cols=["ER", "Age"],
        stratum_col="ER",
        top_k=3,
        param_grid=SMALL_GRID,
        n_estimators_tuning=10,
        n_estimators_final=20,
        n_jobs=1,
        random_state=0,
        top_n_importance=5,
        verbose=False,
    )


def test_screening_keeps_top_k_and_reference(result):
    selected = result.screening.selected
    assert selected[:3] == list(result.screening.scores.index[:3])
    assert {"G6", "G7"} <= set(selected)
    assert len(selected) <= 5


def test_best_config_comes_from_grid(result):
    assert len(result.grid_results) == 2
    assert result.best_score == result.grid_results[SCORE_COL].max()
    assert result.fit.config == result.best_config
    assert result.fit.feature_names == result.screening.selected


def test_survival_table(result):
    long = result.survival_long
    assert len(long) == 80 * len(result.fit.times)
    assert long["subject"].iloc[0] == "S000"


def test_extremal_subjects(result):
    extremal = result.extremal
    assert len(extremal) == 4
    assert sorted(extremal["stratum"].unique()) == [0, 1]


def test_outputs_written(result):
    for path in result.outputs.values():
        assert path.is_file()
    grid = pd.read_csv(result.outputs["grid"])
    assert SCORE_COL in grid.columns


def test_missing_snapshot_aborts(tmp_path):
    with pytest.raises(InputDataError):
        run_pipeline(
            snapshot_path=tmp_path / "missing.pkl",
            reference_path=tmp_path / "missing.txt",
            output_dir=tmp_path / "out",
            verbose=False,
        )
