"""Core utilities for mortix.

This module provides shared infrastructure used across all analysis modules:
- config: Explicit analysis parameters (thresholds, sentinel, column names)
- engine: Dispatcher for detecting and handling Pandas vs Spark DataFrames
- errors: Analysis error taxonomy
- labels: Group and pair labels
- validation: Schema checks for observation, event and factorial tables
"""

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.engine import get_backend, is_pandas, is_spark, to_pandas
from mortix.core.errors import (
    MortixError,
    InvalidBucketError,
    IncompleteSeriesError,
    InsufficientGroupsError,
    DegenerateDesignError,
)
from mortix.core.labels import combine_labels, pair_label
from mortix.core.validation import validate_observations, validate_events, validate_factorial

__all__ = [
    # Config
    "AnalysisConfig",
    "DEFAULT_CONFIG",
    # Engine
    "get_backend",
    "is_pandas",
    "is_spark",
    "to_pandas",
    # Errors
    "MortixError",
    "InvalidBucketError",
    "IncompleteSeriesError",
    "InsufficientGroupsError",
    "DegenerateDesignError",
    # Labels
    "combine_labels",
    "pair_label",
    # Validation
    "validate_observations",
    "validate_events",
    "validate_factorial",
]
