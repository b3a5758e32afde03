import numpy as np
import pandas as pd
import pytest

from brca_rsf.errors import EmptySelectionError, InputDataError
from brca_rsf.reporting import (
    cumulative_hazard_to_survival, survival_long_frame,
    select_extremal_subjects, importance_table
)


class TestCumulativeHazard:
    def test_zero_hazard_gives_full_survival(self):
        survival = cumulative_hazard_to_survival(np.zeros((3, 5)))
        np.testing.assert_array_equal(survival, np.ones((3, 5)))

    def test_matches_exponential_of_cumsum(self):
        hazard = np.array([[0.1, 0.2, 0.3], [0.0, 1.0, 0.5]])
        expected = np.exp(-np.cumsum(hazard, axis=1))
        np.testing.assert_allclose(cumulative_hazard_to_survival(hazard), expected)

    def test_non_increasing_for_non_negative_hazard(self):
        rng = np.random.RandomState(1)
        hazard = rng.exponential(scale=0.2, size=(20, 30))
        hazard[:, ::4] = 0.0
        survival = cumulative_hazard_to_survival(hazard)
        assert (np.diff(survival, axis=1) <= 0).all()
        assert ((survival > 0) & (survival <= 1)).all()

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_input_propagates(self, bad):
        survival = cumulative_hazard_to_survival([[0.1, bad, 0.1], [0.1, 0.1, 0.1]])
        assert survival[0, 0] == pytest.approx(np.exp(-0.1))
        assert np.isnan(survival[0, 1:]).all()
        assert np.isfinite(survival[1]).all()

    def test_rejects_one_dimensional_input(self):
        with pytest.raises(ValueError):
            cumulative_hazard_to_survival(np.zeros(4))


def test_survival_long_frame_is_subject_major():
    survival = np.array([[1.0, 0.9, 0.8], [1.0, 0.5, 0.1]])
    long = survival_long_frame(survival, [1.0, 2.0, 5.0], ["a", "b"])

    assert list(long.columns) == ["subject", "time", "survival"]
    assert list(long["subject"]) == ["a"] * 3 + ["b"] * 3
    assert list(long["time"]) == [1.0, 2.0, 5.0] * 2
    assert list(long["survival"]) == [1.0, 0.9, 0.8, 1.0, 0.5, 0.1]


def test_survival_long_frame_shape_mismatch():
    with pytest.raises(ValueError):
        survival_long_frame(np.ones((2, 3)), [1.0, 2.0])


@pytest.fixture
def toy_frame():
    return pd.DataFrame(
        {
            "ER": [0, 0, 1, 1],
            "event": [1, 1, 1, 1],
            "gene": [0.5, 2.0, 3.0, -1.0],
        },
        index=["s1", "s2", "s3", "s4"],
    )


class TestExtremalSubjects:
    def test_min_and_max_per_stratum(self, toy_frame):
        out = select_extremal_subjects(toy_frame, "gene", stratum_col="ER", event_col="event")
        picked = {(r.stratum, r.extreme): r.subject for r in out.itertuples()}
        assert picked == {
            (0, "min"): "s1", (0, "max"): "s2",
            (1, "min"): "s4", (1, "max"): "s3",
        }

    def test_ties_go_to_first_subject(self, toy_frame):
        toy_frame["gene"] = [1.0, 1.0, 2.0, 2.0]
        out = select_extremal_subjects(toy_frame, "gene", stratum_col="ER", event_col="event")
        assert list(out["subject"]) == ["s1", "s1", "s3", "s3"]

    def test_event_restriction(self, toy_frame):
        toy_frame["event"] = [0, 1, 1, 1]
        out = select_extremal_subjects(toy_frame, "gene", stratum_col="ER", event_col="event")
        assert list(out.loc[out["stratum"] == 0, "subject"]) == ["s2", "s2"]

    def test_empty_stratum_raises(self, toy_frame):
        toy_frame["event"] = [1, 1, 0, 0]
        with pytest.raises(EmptySelectionError) as excinfo:
            select_extremal_subjects(toy_frame, "gene", stratum_col="ER", event_col="event")
        assert excinfo.value.stratum == 1

    def test_explicit_level_without_subjects(self, toy_frame):
        with pytest.raises(EmptySelectionError):
            select_extremal_subjects(
                toy_frame, "gene", stratum_col="ER", event_col="event", levels=[0, 2]
            )

    def test_single_observed_stratum_raises(self, toy_frame):
        toy_frame["ER"] = 1
        with pytest.raises(InputDataError, match="two observed levels"):
            select_extremal_subjects(toy_frame, "gene", stratum_col="ER", event_col="event")

    def test_single_stratum_with_explicit_levels(self, toy_frame):
        toy_frame["ER"] = 1
        out = select_extremal_subjects(
            toy_frame, "gene", stratum_col="ER", event_col="event", levels=[1]
        )
        assert list(out["subject"]) == ["s4", "s3"]


def test_importance_table():
    importance = pd.Series({"a": 0.01, "b": 0.05, "c": -0.01})
    table = importance_table(importance, top_n=2)
    assert list(table["feature"]) == ["b", "a"]
    assert list(table["rank"]) == [1, 2]
