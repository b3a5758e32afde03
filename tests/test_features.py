import numpy as np
import pandas as pd
import pytest

from brca_rsf.errors import DegenerateFeatureError
from brca_rsf.features import (
    univariate_cox_pvalue, univariate_cox_scores, rank_features,
    select_features, screen_features, get_feature_columns
)


def test_prognostic_gene_ranks_first(survival_data):
    scores = univariate_cox_scores(
        survival_data.features, survival_data.time, survival_data.event
    )
    assert list(scores.index) == survival_data.feature_names
    assert ((scores >= 0) & (scores <= 1)).all()
    assert rank_features(scores).index[0] == "G0"


def test_zero_variance_feature_is_fatal(survival_data):
    features = survival_data.features.copy()
    features["FLAT"] = 3.0
    with pytest.raises(DegenerateFeatureError) as excinfo:
        univariate_cox_scores(features, survival_data.time, survival_data.event)
    assert excinfo.value.feature == "FLAT"


def test_all_missing_feature_is_fatal(survival_data):
    values = pd.Series(np.nan, index=survival_data.subject_ids, name="EMPTY")
    with pytest.raises(DegenerateFeatureError):
        univariate_cox_pvalue(values, survival_data.time, survival_data.event)


def test_rank_ties_keep_column_order():
    scores = pd.Series({"a": 0.5, "b": 0.1, "c": 0.5, "d": 0.1})
    assert list(rank_features(scores).index) == ["b", "d", "a", "c"]


class TestSelectFeatures:
    ranked = pd.Series({"g2": 0.01, "g5": 0.02, "g1": 0.03, "g4": 0.2, "g3": 0.4})

    def test_top_k_then_reference(self):
        selected = select_features(self.ranked, ["g3", "g2"], top_k=2)
        assert selected == ["g2", "g5", "g3"]

    def test_reference_absent_from_matrix_is_skipped(self):
        selected = select_features(self.ranked, ["zz", "g4"], top_k=1)
        assert selected == ["g2", "g4"]

    def test_zero_k_keeps_reference_only(self):
        assert select_features(self.ranked, ["g1"], top_k=0) == ["g1"]

    def test_negative_k(self):
        with pytest.raises(ValueError):
            select_features(self.ranked, [], top_k=-1)

    @pytest.mark.parametrize("top_k", [0, 1, 3, 5])
    def test_size_and_membership(self, top_k):
        reference = ["g4", "g2", "g4", "nope"]
        selected = select_features(self.ranked, reference, top_k=top_k)
        allowed = set(self.ranked.index[:top_k]) | set(reference)
        assert len(selected) <= top_k + len(set(reference))
        assert set(selected) <= allowed
        assert len(selected) == len(set(selected))


def test_screen_features(survival_data):
    result = screen_features(survival_data, ["G7", "G0", "MISSING"], top_k=3, verbose=False)
    assert result.selected[0] == "G0"
    assert "G7" in result.selected
    assert "MISSING" not in result.selected
    assert len(result.selected) <= 3 + 3
    assert len(result.selected) == len(set(result.selected))
    assert result.data.feature_names == result.selected
    assert result.scores.is_monotonic_increasing


def test_get_feature_columns(snapshot_df):
    cols = get_feature_columns(snapshot_df, exclude_cols=["ER", "Age"])
    assert cols == [f"G{j}" for j in range(8)]
