"""Pytest configuration and fixtures for mortix tests."""

import pandas as pd
import pytest
from pyspark.sql import SparkSession


@pytest.fixture(scope="session")
def spark_session():
    """Create a SparkSession for testing.

    This fixture creates a local SparkSession with minimal configuration
    suitable for unit testing. The session is shared across all tests
    in a test session for efficiency.

    Yields:
        SparkSession: Active SparkSession instance.
    """
    spark = (
        SparkSession.builder.master("local[2]")
        .appName("mortix-test")
        .config("spark.sql.shuffle.partitions", "4")
        .config("spark.sql.adaptive.enabled", "true")
        .config("spark.sql.adaptive.coalescePartitions.enabled", "true")
        .getOrCreate()
    )

    # Set log level to reduce noise during tests
    spark.sparkContext.setLogLevel("ERROR")

    yield spark

    # Cleanup after tests
    spark.stop()


@pytest.fixture
def two_group_observations():
    """Groups A and B, one replicate of 10 units each.

    A: 2 deaths on day 1, 1 on day 2, 7 alive.
    B: 5 deaths on day 1, 5 alive.
    """
    return pd.DataFrame({
        "group": ["A", "A", "A", "B", "B"],
        "replicate": [1, 1, 1, 1, 1],
        "time_bucket": ["1", "2", "alive", "1", "alive"],
        "count": [2, 1, 7, 5, 5],
    })


@pytest.fixture
def three_group_observations():
    """Three groups over three days; group C is wiped out on day 1."""
    return pd.DataFrame({
        "group": ["A", "A", "A", "A", "B", "B", "B", "C", "C"],
        "replicate": [1, 1, 1, 1, 1, 1, 1, 1, 1],
        "time_bucket": ["1", "2", "3", "alive", "1", "3", "alive", "1", "alive"],
        "count": [1, 1, 1, 17, 6, 6, 8, 10, 0],
    })


@pytest.fixture
def synthetic_observations():
    """Three replicates of three groups with distinct daily hazards."""
    from mortix.survival.utils import generate_mortality_counts

    return generate_mortality_counts(
        {"low": 0.02, "mid": 0.08, "high": 0.2},
        n_replicates=3, n_units=30, n_days=12, seed=42,
    )
