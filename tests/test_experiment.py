"""Tests for the experiment-level orchestration."""

import numpy as np
import pandas as pd
import pytest

from mortix import AnalysisConfig, MortalityExperiment
from mortix.core.errors import IncompleteSeriesError


@pytest.fixture
def two_factor_observations():
    """Treatment x delay, one replicate of 10 units per combination."""
    deaths = {
        ("ctrl", 0): (1, 1),
        ("ctrl", 24): (2, 1),
        ("trt", 0): (4, 2),
        ("trt", 24): (5, 3),
    }
    rows = []
    for (treatment, delay), (day_1, day_2) in deaths.items():
        for bucket, count in (("1", day_1), ("2", day_2), ("alive", 10 - day_1 - day_2)):
            rows.append({"treatment": treatment, "delay": delay, "replicate": 1,
                         "time_bucket": bucket, "count": count})
    return pd.DataFrame(rows)


class TestMortalityExperiment:
    """Tests for MortalityExperiment.run."""

    def test_two_group_report(self, two_group_observations):
        """Test every table of the report for the two-group scenario."""
        report = MortalityExperiment("forced mating").run(two_group_observations)

        assert report.name == "forced mating"
        assert len(report.events) == 20
        assert list(report.summary.columns) == ["group", "time", "mean", "median", "se", "min", "max", "n"]
        a_day_2 = report.summary[(report.summary["group"] == "A") & (report.summary["time"] == 2)]
        assert a_day_2["mean"].iloc[0] == pytest.approx(0.7)
        assert report.significance.shape == (1, 1)
        assert list(report.significance.columns) == ["A vs B"]
        assert report.omnibus.degrees_of_freedom == 1
        assert 0 < report.omnibus.p_value < 1

    def test_significance_respects_sweep_alpha(self, two_group_observations):
        """Test the matrix is thresholded with the configured alpha."""
        strict = MortalityExperiment("strict").run(two_group_observations)
        loose = MortalityExperiment("loose", AnalysisConfig(sweep_alpha=0.5)).run(two_group_observations)

        assert np.isnan(strict.significance.iloc[0, 0])
        assert loose.significance.iloc[0, 0] == pytest.approx(strict.sweep.p_value("A", "B", 1.0))

    def test_synthetic_groups_differ(self, synthetic_observations):
        """Test strongly different hazards are detected."""
        report = MortalityExperiment("synthetic").run(synthetic_observations)

        assert report.omnibus.p_value < 0.001
        first_days = report.sweep.first_significant_day().set_index("pair")["first_significant_day"]
        assert not np.isnan(first_days["high vs low"])

    def test_two_factor_experiment(self, two_factor_observations):
        """Test two group columns are swept by their combined label."""
        config = AnalysisConfig(group_cols=["treatment", "delay"], sweep_alpha=0.05)

        report = MortalityExperiment("time-delayed mating", config).run(two_factor_observations)

        assert report.sweep.pairs == [
            "ctrl:0 vs ctrl:24",
            "ctrl:0 vs trt:0",
            "ctrl:0 vs trt:24",
            "ctrl:24 vs trt:0",
            "ctrl:24 vs trt:24",
            "trt:0 vs trt:24",
        ]
        assert report.significance.shape == (1, 6)
        assert {"treatment", "delay", "label"} <= set(report.events.columns)
        assert report.omnibus.degrees_of_freedom == 3

    def test_to_dict(self, two_group_observations):
        """Test the report serialises to plain records."""
        report = MortalityExperiment("forced mating").run(two_group_observations)

        result = report.to_dict()

        assert result["name"] == "forced mating"
        assert result["n_units"] == 20
        assert result["omnibus"]["degrees_of_freedom"] == 1
        assert [row["pair"] for row in result["first_significant_day"]] == ["A vs B"]

    def test_incomplete_series_propagates(self, two_group_observations):
        """Test a series without its sentinel bucket fails the whole run."""
        data = two_group_observations[
            ~((two_group_observations["group"] == "B") & (two_group_observations["time_bucket"] == "alive"))
        ]

        with pytest.raises(IncompleteSeriesError):
            MortalityExperiment("broken").run(data)


class TestRunFactorial:
    """Tests for MortalityExperiment.run_factorial."""

    def test_run_factorial(self):
        """Test factorial grouping through the experiment entry point."""
        data = pd.DataFrame({
            "strain": ["wt"] * 3 + ["mut"] * 3,
            "cfu": [100.0, 110.0, 105.0, 20.0, 25.0, 22.0],
        })

        result = MortalityExperiment("cfu").run_factorial(data, response="cfu", factors="strain")

        assert result.letters() == {"wt": "a", "mut": "b"}
        assert result.anova.at["strain", "df"] == 1
