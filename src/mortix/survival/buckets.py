"""Parsing of raw time-bucket values (day index or end-of-observation sentinel)."""

import math
import numbers
from typing import Optional

import numpy as np
import pandas as pd
from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F

from mortix.core.errors import InvalidBucketError


def _normalize(text: str) -> str:
    return text.strip().lower()


def parse_bucket(value, sentinel: str) -> Optional[float]:
    """Parse one time-bucket value.

    Returns:
        The numeric time, or None when ``value`` is the sentinel.

    Raises:
        InvalidBucketError: If the value is neither the sentinel nor a
            finite, non-negative number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidBucketError(value, "expected a numeric time or the sentinel")

    if isinstance(value, numbers.Number):
        time = float(value)
    elif isinstance(value, str):
        if _normalize(value) == _normalize(sentinel):
            return None
        try:
            time = float(value.strip())
        except ValueError:
            raise InvalidBucketError(
                value, f"expected a numeric time or {sentinel!r}"
            ) from None
    else:
        raise InvalidBucketError(value, f"unsupported type {type(value).__name__}")

    if math.isnan(time) or math.isinf(time):
        raise InvalidBucketError(value, "time must be finite")
    if time < 0:
        raise InvalidBucketError(value, "time must be non-negative")
    return time


def parse_buckets(buckets: pd.Series, sentinel: str) -> pd.Series:
    """Vectorized :func:`parse_bucket`; the sentinel parses to NaN.

    Each distinct value is parsed once, so the cost is in the number of
    distinct buckets rather than rows.
    """
    parsed = {}
    for value in pd.unique(buckets):
        time = parse_bucket(value, sentinel)
        parsed[value] = np.nan if time is None else time
    return buckets.map(parsed).astype(float)


def is_sentinel_column(bucket: Column, sentinel: str) -> Column:
    """Spark expression: True where ``bucket`` is the sentinel."""
    return F.lower(F.trim(bucket.cast("string"))) == F.lit(_normalize(sentinel))


def bucket_time_column(bucket: Column, sentinel: str) -> Column:
    """Spark expression: numeric time of ``bucket``, null for the sentinel."""
    return F.when(is_sentinel_column(bucket, sentinel), F.lit(None).cast("double")).otherwise(
        F.trim(bucket.cast("string")).cast("double")
    )


def check_spark_buckets(observations: DataFrame, bucket_col: str, sentinel: str) -> None:
    """Spark counterpart of :func:`parse_buckets` validation.

    Raises:
        InvalidBucketError: For the first bucket that is neither the sentinel
            nor a finite, non-negative number.
    """
    bucket = F.col(bucket_col)
    time = bucket_time_column(bucket, sentinel)
    checked = observations.select(
        bucket.alias("_bucket"),
        is_sentinel_column(bucket, sentinel).alias("_is_sentinel"),
        time.alias("_time"),
    ).filter(~F.col("_is_sentinel"))

    unparsed = checked.filter(F.col("_time").isNull()).first()
    if unparsed is not None:
        raise InvalidBucketError(unparsed["_bucket"], f"expected a numeric time or {sentinel!r}")
    infinite = checked.filter(
        F.isnan("_time") | F.col("_time").isin(float("inf"), float("-inf"))
    ).first()
    if infinite is not None:
        raise InvalidBucketError(infinite["_bucket"], "time must be finite")
    negative = checked.filter(F.col("_time") < 0).first()
    if negative is not None:
        raise InvalidBucketError(negative["_bucket"], "time must be non-negative")
