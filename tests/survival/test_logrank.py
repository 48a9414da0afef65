"""Tests for two-sample and k-sample log-rank tests."""

import numpy as np
import pandas as pd
import pytest
from lifelines.statistics import logrank_test as lifelines_logrank
from lifelines.statistics import multivariate_logrank_test

from mortix.core.errors import InsufficientGroupsError
from mortix.survival import LogRankResult, logrank_frame, logrank_test, multigroup_logrank


class TestLogRankResult:
    """Tests for LogRankResult dataclass."""

    def test_to_dict(self):
        """Test conversion to dictionary."""
        result = LogRankResult(
            test_statistic=5.0,
            p_value=0.025,
            degrees_of_freedom=1,
            group_1_name="A",
            group_2_name="B",
        )

        result_dict = result.to_dict()

        assert result_dict["test_statistic"] == 5.0
        assert result_dict["p_value"] == 0.025
        assert result_dict["degrees_of_freedom"] == 1
        assert result_dict["group_1_name"] == "A"
        assert result_dict["group_2_name"] == "B"

    def test_significant(self):
        """Test the significance helper uses a strict inequality."""
        result = LogRankResult(test_statistic=5.0, p_value=0.01)

        assert result.significant(0.05) is True
        assert result.significant(0.01) is False


class TestLogRankTest:
    """Tests for the two-sample log-rank test."""

    def test_matches_lifelines(self):
        """Test statistic and p-value agree with lifelines."""
        rng = np.random.default_rng(7)
        d1 = np.round(rng.exponential(10, 40), 1)
        d2 = np.round(rng.exponential(16, 40), 1)
        e1 = rng.binomial(1, 0.8, 40)
        e2 = rng.binomial(1, 0.8, 40)

        ours = logrank_test(d1, e1, d2, e2)
        reference = lifelines_logrank(d1, d2, event_observed_A=e1, event_observed_B=e2)

        assert ours.test_statistic == pytest.approx(reference.test_statistic, rel=1e-6)
        assert ours.p_value == pytest.approx(reference.p_value, rel=1e-6)

    def test_scenario_direction(self):
        """Test B's steeper early drop shows up as A's death deficit."""
        d_a = [1.0] * 10
        e_a = [1] * 2 + [0] * 8
        d_b = [1.0] * 10
        e_b = [1] * 5 + [0] * 5

        result = logrank_test(d_a, e_a, d_b, e_b, group_1_name="A", group_2_name="B")

        assert result.observed_1 == 2
        assert result.expected_1 == pytest.approx(3.5)
        assert result.test_statistic == pytest.approx(1.5 ** 2 / (10 * 10 * 7 * 13 / (20 * 20 * 19)))
        assert 0.1 < result.p_value < 0.2

    def test_symmetric_in_group_order(self):
        """Test swapping the groups leaves the statistic unchanged."""
        d1, e1 = [2, 3, 5, 7, 8], [1, 1, 0, 1, 0]
        d2, e2 = [1, 1, 2, 4, 9], [1, 1, 1, 1, 1]

        forward = logrank_test(d1, e1, d2, e2)
        backward = logrank_test(d2, e2, d1, e1)

        assert forward.test_statistic == pytest.approx(backward.test_statistic)
        assert forward.p_value == pytest.approx(backward.p_value)

    def test_all_censored(self):
        """Test no deaths gives statistic 0 and p-value 1."""
        result = logrank_test([5, 6, 7], [0, 0, 0], [8, 10, 12], [0, 0, 0])

        assert result.test_statistic == 0.0
        assert result.p_value == 1.0


class TestLogRankFrame:
    """Tests for the tidy-table log-rank wrapper."""

    def test_groups_in_sort_order(self):
        """Test the first group is the lowest label whatever the row order."""
        df = pd.DataFrame({
            "time": [5, 6, 7, 8, 10, 12],
            "event": [1, 0, 1, 0, 1, 1],
            "group": ["Y", "Y", "Y", "X", "X", "X"],
        })

        result = logrank_frame(df, "group")

        assert result.group_1_name == "X"
        assert result.n_group_1 == 3

    def test_single_group_raises(self):
        """Test one group raises InsufficientGroupsError."""
        df = pd.DataFrame({"time": [1, 2], "event": [1, 1], "group": ["A", "A"]})

        with pytest.raises(InsufficientGroupsError):
            logrank_frame(df, "group")

    def test_three_groups_raise(self):
        """Test more than two groups is rejected."""
        df = pd.DataFrame({"time": [1, 2, 3], "event": [1, 1, 1], "group": ["A", "B", "C"]})

        with pytest.raises(ValueError, match="exactly 2 unique values"):
            logrank_frame(df, "group")


class TestMultiGroupLogRank:
    """Tests for the k-sample omnibus log-rank test."""

    def test_matches_lifelines(self):
        """Test the omnibus statistic agrees with lifelines."""
        rng = np.random.default_rng(3)
        frames = []
        for group, scale in (("a", 8.0), ("b", 12.0), ("c", 20.0)):
            frames.append(pd.DataFrame({
                "time": np.round(rng.exponential(scale, 30)),
                "event": rng.binomial(1, 0.75, 30),
                "group": group,
            }))
        df = pd.concat(frames, ignore_index=True)

        ours = multigroup_logrank(df, "group")
        reference = multivariate_logrank_test(df["time"], df["group"], df["event"])

        assert ours.degrees_of_freedom == 2
        assert ours.test_statistic == pytest.approx(reference.test_statistic, rel=1e-6)
        assert ours.p_value == pytest.approx(reference.p_value, rel=1e-6)

    def test_two_groups_equal_pairwise(self):
        """Test k=2 reduces to the two-sample test."""
        df = pd.DataFrame({
            "time": [1, 2, 3, 4, 5, 2, 3, 6, 7, 8],
            "event": [1, 1, 0, 1, 1, 1, 0, 1, 1, 0],
            "group": ["A"] * 5 + ["B"] * 5,
        })

        assert multigroup_logrank(df, "group").test_statistic == pytest.approx(
            logrank_frame(df, "group").test_statistic
        )

    def test_single_group_raises(self):
        """Test one group raises InsufficientGroupsError."""
        df = pd.DataFrame({"time": [1, 2], "event": [1, 1], "group": ["A", "A"]})

        with pytest.raises(InsufficientGroupsError):
            multigroup_logrank(df, "group")
