"""Tests for expansion of aggregated counts into event records."""

import pandas as pd
import pytest

from mortix.core.config import AnalysisConfig
from mortix.core.errors import InvalidBucketError, MortixError
from mortix.survival import EventExpander


def _records(events, group):
    subset = events[events["group"] == group]
    return sorted(zip(subset["time"], subset["event"]))


class TestEventExpanderPandas:
    """Tests for EventExpander with pandas DataFrames."""

    def test_two_group_scenario(self, two_group_observations):
        """Test the A/B scenario expands to 10 records per group."""
        events = EventExpander().expand(two_group_observations)

        assert list(events.columns) == ["group", "replicate", "time", "event"]
        assert _records(events, "A") == [(1.0, 1)] * 2 + [(2.0, 0)] * 7 + [(2.0, 1)]
        assert _records(events, "B") == [(1.0, 0)] * 5 + [(1.0, 1)] * 5

    def test_sentinel_maps_to_last_day_of_its_series(self, two_group_observations):
        """Test survivors are censored at their own series' last day."""
        events = EventExpander().expand(two_group_observations)

        censored = events[events["event"] == 0]
        assert set(censored.loc[censored["group"] == "A", "time"]) == {2.0}
        assert set(censored.loc[censored["group"] == "B", "time"]) == {1.0}

    def test_zero_count_emits_nothing(self):
        """Test rows with count 0 produce no records."""
        obs = pd.DataFrame({
            "group": ["A", "A", "A"],
            "replicate": [1, 1, 1],
            "time_bucket": ["1", "2", "alive"],
            "count": [3, 0, 0],
        })

        events = EventExpander().expand(obs)

        assert len(events) == 3
        assert (events["event"] == 1).all()

    def test_expansion_conserves_counts(self, synthetic_observations):
        """Test record counts equal summed counts per (group, replicate)."""
        events = EventExpander().expand(synthetic_observations)

        expected = synthetic_observations.groupby(["group", "replicate"])["count"].sum()
        actual = events.groupby(["group", "replicate"]).size()
        pd.testing.assert_series_equal(
            actual.sort_index(), expected.sort_index(), check_names=False, check_dtype=False
        )

    def test_numeric_buckets_and_sentinel_case(self):
        """Test numeric bucket values and a differently cased sentinel."""
        obs = pd.DataFrame({
            "group": ["A", "A", "A"],
            "replicate": [1, 1, 1],
            "time_bucket": [1, 4.5, " Alive "],
            "count": [1, 1, 2],
        })

        events = EventExpander().expand(obs)

        assert sorted(events["time"]) == [1.0, 4.5, 4.5, 4.5]
        assert int(events["event"].sum()) == 2

    def test_fixed_horizon_policy(self, two_group_observations):
        """Test survivors are censored at a caller-supplied horizon."""
        config = AnalysisConfig(horizon_policy="fixed", horizon=14)

        events = EventExpander(config).expand(two_group_observations)

        assert set(events.loc[events["event"] == 0, "time"]) == {14.0}

    def test_fixed_horizon_before_last_death_raises(self, two_group_observations):
        """Test a horizon earlier than an observed death is rejected."""
        config = AnalysisConfig(horizon_policy="fixed", horizon=1)

        with pytest.raises(InvalidBucketError, match="horizon"):
            EventExpander(config).expand(two_group_observations)

    def test_series_without_deaths_uses_experiment_horizon(self):
        """Test a replicate with only survivors is censored at the last day overall."""
        obs = pd.DataFrame({
            "group": ["A", "A", "B"],
            "replicate": [1, 1, 1],
            "time_bucket": ["3", "alive", "alive"],
            "count": [1, 4, 5],
        })

        events = EventExpander().expand(obs)

        assert set(events.loc[events["group"] == "B", "time"]) == {3.0}

    def test_invalid_bucket_raises(self):
        """Test an unparseable bucket raises InvalidBucketError."""
        obs = pd.DataFrame({
            "group": ["A", "A"],
            "replicate": [1, 1],
            "time_bucket": ["day one", "alive"],
            "count": [1, 1],
        })

        with pytest.raises(InvalidBucketError, match="day one"):
            EventExpander().expand(obs)

    def test_invalid_bucket_is_value_error(self):
        """Test the bucket error is catchable as MortixError and ValueError."""
        obs = pd.DataFrame({
            "group": ["A"], "replicate": [1], "time_bucket": ["-2"], "count": [1],
        })

        with pytest.raises(MortixError):
            EventExpander().expand(obs)
        with pytest.raises(ValueError):
            EventExpander().expand(obs)

    def test_only_sentinel_buckets_raise(self):
        """Test the sentinel cannot be mapped when no finite day exists."""
        obs = pd.DataFrame({
            "group": ["A"], "replicate": [1], "time_bucket": ["alive"], "count": [5],
        })

        with pytest.raises(InvalidBucketError, match="no finite time"):
            EventExpander().expand(obs)

    def test_negative_count_raises(self, two_group_observations):
        """Test negative counts are rejected."""
        obs = two_group_observations.copy()
        obs.loc[0, "count"] = -1

        with pytest.raises(ValueError, match="non-negative"):
            EventExpander().expand(obs)

    def test_missing_column_raises(self, two_group_observations):
        """Test a missing count column is reported."""
        with pytest.raises(ValueError, match="not found"):
            EventExpander().expand(two_group_observations.drop(columns="count"))

    def test_two_factor_groups_get_label(self):
        """Test two group columns produce a combined label column."""
        obs = pd.DataFrame({
            "strain": ["wt", "wt", "mut", "mut"],
            "sex": ["F", "F", "M", "M"],
            "replicate": [1, 1, 1, 1],
            "time_bucket": ["2", "alive", "1", "alive"],
            "count": [1, 1, 2, 2],
        })
        config = AnalysisConfig(group_cols=["strain", "sex"])

        events = EventExpander(config).expand(obs)

        assert sorted(events["label"].unique()) == ["mut:M", "wt:F"]
        assert len(events) == 6

    def test_custom_column_names(self):
        """Test configured column names are honoured."""
        obs = pd.DataFrame({
            "treatment": ["x", "x"],
            "cage": ["c1", "c1"],
            "day": ["5", "survived"],
            "dead": [2, 3],
        })
        config = AnalysisConfig(
            group_cols="treatment", replicate_col="cage", bucket_col="day",
            count_col="dead", sentinel="survived", time_col="t", event_col="died",
        )

        events = EventExpander(config).expand(obs)

        assert list(events.columns) == ["treatment", "cage", "t", "died"]
        assert int(events["died"].sum()) == 2


class TestEventExpanderSpark:
    """Tests for EventExpander with PySpark DataFrames."""

    def test_spark_matches_pandas(self, spark_session, two_group_observations):
        """Test Spark expansion yields the same records as pandas."""
        spark_df = spark_session.createDataFrame(two_group_observations)

        events = EventExpander().expand(spark_df).toPandas()
        expected = EventExpander().expand(two_group_observations)

        assert _records(events, "A") == _records(expected, "A")
        assert _records(events, "B") == _records(expected, "B")

    def test_spark_conserves_counts(self, spark_session, synthetic_observations):
        """Test Spark expansion conserves per-series counts."""
        spark_df = spark_session.createDataFrame(synthetic_observations)

        events = EventExpander().expand(spark_df)

        assert events.count() == int(synthetic_observations["count"].sum())

    def test_spark_invalid_bucket_raises(self, spark_session):
        """Test Spark expansion rejects unparseable buckets."""
        spark_df = spark_session.createDataFrame(pd.DataFrame({
            "group": ["A", "A"],
            "replicate": [1, 1],
            "time_bucket": ["soon", "alive"],
            "count": [1, 1],
        }))

        with pytest.raises(InvalidBucketError):
            EventExpander().expand(spark_df)

    def test_spark_nan_bucket_raises(self, spark_session):
        """Test a "NaN" bucket is rejected rather than cast to a NaN time."""
        spark_df = spark_session.createDataFrame(pd.DataFrame({
            "group": ["A", "A", "A"],
            "replicate": [1, 1, 1],
            "time_bucket": ["1", "NaN", "alive"],
            "count": [1, 1, 1],
        }))

        with pytest.raises(InvalidBucketError, match="finite"):
            EventExpander().expand(spark_df)

    def test_spark_fractional_count_raises(self, spark_session):
        """Test Spark counts must be whole numbers, as with pandas."""
        spark_df = spark_session.createDataFrame(
            [("A", 1, "1", 2.5), ("A", 1, "alive", 7.0)],
            schema="group string, replicate int, time_bucket string, count double",
        )

        with pytest.raises(ValueError, match="whole numbers"):
            EventExpander().expand(spark_df)

    def test_spark_null_count_raises(self, spark_session):
        """Test a null Spark count is rejected instead of dropping its row."""
        spark_df = spark_session.createDataFrame(
            [("A", 1, "1", None), ("A", 1, "alive", 7)],
            schema="group string, replicate int, time_bucket string, count int",
        )

        with pytest.raises(ValueError, match="missing values"):
            EventExpander().expand(spark_df)
