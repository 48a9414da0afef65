"""Validation utilities for mortix input tables."""

from typing import Iterable, Sequence

import pandas as pd
from pandas.api.types import is_numeric_dtype
from pyspark.sql import DataFrame as SparkDataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import NumericType

from mortix.core.config import AnalysisConfig
from mortix.core.engine import BackendType, get_backend


def require_columns(df: BackendType, columns: Iterable[str], role: str = "input") -> None:
    """Raise ``ValueError`` naming every column of ``columns`` missing from ``df``."""
    get_backend(df)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(
            f"Column(s) {missing} not found in {role} DataFrame "
            f"(available: {list(df.columns)})"
        )


def validate_observations(df: BackendType, config: AnalysisConfig) -> None:
    """Validate an aggregated Observation table.

    Args:
        df: Input pandas or PySpark DataFrame.
        config: Names the group, replicate, bucket and count columns.

    Raises:
        ValueError: If required columns are missing, counts are not numeric,
            or any count is negative.
        TypeError: If df is not a recognized DataFrame type.
    """
    required = [*config.group_columns, config.replicate_col, config.bucket_col, config.count_col]
    require_columns(df, required, role="observation")

    if isinstance(df, SparkDataFrame):
        count_dtype = df.schema[config.count_col].dataType
        if not isinstance(count_dtype, NumericType):
            raise ValueError(
                f"Count column '{config.count_col}' must be numeric, found {count_dtype}"
            )
        counts = F.col(config.count_col).cast("double")
        summary = df.agg(
            F.min(counts).alias("min_count"),
            F.sum(F.when(counts.isNull() | F.isnan(counts), 1).otherwise(0)).alias("n_missing"),
            F.sum(F.when(counts != F.floor(counts), 1).otherwise(0)).alias("n_fractional"),
        ).collect()[0]
        if summary["n_missing"]:
            raise ValueError(f"Count column '{config.count_col}' contains missing values")
        if summary["n_fractional"]:
            raise ValueError(f"Count column '{config.count_col}' must hold whole numbers")
        min_count = summary["min_count"]
    else:
        counts = df[config.count_col]
        if not is_numeric_dtype(counts):
            raise ValueError(
                f"Count column '{config.count_col}' must be numeric, found {counts.dtype}"
            )
        if counts.isna().any():
            raise ValueError(f"Count column '{config.count_col}' contains missing values")
        if (counts != counts.round()).any():
            raise ValueError(f"Count column '{config.count_col}' must hold whole numbers")
        min_count = counts.min() if len(counts) else None

    if min_count is not None and min_count < 0:
        raise ValueError(f"Counts must be non-negative, found min={min_count}")


def validate_events(df: pd.DataFrame, group_col: str, time_col: str, event_col: str) -> None:
    """Validate an expanded Event table held in pandas.

    Raises:
        ValueError: If columns are missing, times are negative or non-numeric,
            or the event column holds anything other than 0/1.
    """
    require_columns(df, [group_col, time_col, event_col], role="event")

    if not is_numeric_dtype(df[time_col]):
        raise ValueError(f"Time column '{time_col}' must be numeric, found {df[time_col].dtype}")
    if len(df) and df[time_col].min() < 0:
        raise ValueError(f"Time values must be non-negative, found min={df[time_col].min()}")

    bad_events = set(pd.unique(df[event_col])) - {0, 1, True, False}
    if bad_events:
        raise ValueError(
            f"Event column '{event_col}' must contain only 0/1, found {sorted(map(str, bad_events))}"
        )


def validate_factorial(df: pd.DataFrame, response: str, factors: Sequence[str]) -> None:
    """Validate a flat response/factor table for the factorial engine.

    Raises:
        ValueError: If there are not 1 or 2 factors, columns are missing,
            or the response is not numeric.
    """
    if not 1 <= len(factors) <= 2:
        raise ValueError(f"Expected 1 or 2 factor columns, got {list(factors)}")
    require_columns(df, [response, *factors], role="factorial")
    if not is_numeric_dtype(df[response]):
        raise ValueError(f"Response column '{response}' must be numeric, found {df[response].dtype}")
    if df[[response, *factors]].isna().any().any():
        raise ValueError("Response and factor columns must not contain missing values")
