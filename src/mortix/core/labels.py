"""Group labelling for one- and two-factor designs."""

from typing import Sequence

import pandas as pd
from pyspark.sql import DataFrame as SparkDataFrame
from pyspark.sql import functions as F


def _ambiguous_level_error(column: str, level, separator: str) -> ValueError:
    return ValueError(
        f"Level {level!r} of column '{column}' contains the label separator "
        f"{separator!r}; combined group labels would be ambiguous"
    )


def combine_labels(df: pd.DataFrame, columns: Sequence[str], separator: str = ":") -> pd.Series:
    """Join the levels of ``columns`` row-wise into one string label.

    A single column is returned as strings unchanged, so one-factor labels
    read exactly like their level.

    Raises:
        ValueError: If two or more columns are joined and a level contains
            ``separator``.
    """
    columns = list(columns)
    levels = [df[column].astype(str) for column in columns]
    if len(columns) > 1:
        for column, values in zip(columns, levels):
            clashing = values[values.str.contains(separator, regex=False)]
            if not clashing.empty:
                raise _ambiguous_level_error(column, clashing.iloc[0], separator)

    labels = levels[0]
    for values in levels[1:]:
        labels = labels + separator + values
    return labels.rename(None)


def with_group_key(df: pd.DataFrame, columns: Sequence[str], key: str, separator: str = ":") -> pd.DataFrame:
    """Return ``df`` with a ``key`` column holding the combined group label.

    For a single group column equal to ``key`` the frame is returned untouched.
    """
    columns = list(columns)
    if columns == [key]:
        return df
    out = df.copy()
    out[key] = combine_labels(df, columns, separator)
    return out


def pair_label(a, b) -> str:
    """Label of an unordered pair, members in sort order."""
    first, second = sorted((str(a), str(b)))
    return f"{first} vs {second}"


def with_spark_group_key(df: SparkDataFrame, columns: Sequence[str], key: str, separator: str = ":") -> SparkDataFrame:
    """Spark counterpart of :func:`with_group_key`."""
    columns = list(columns)
    if columns == [key]:
        return df
    if len(columns) > 1:
        for column in columns:
            clashing = df.filter(F.col(column).cast("string").contains(separator)).select(column).first()
            if clashing is not None:
                raise _ambiguous_level_error(column, clashing[0], separator)

    parts = []
    for column in columns:
        if parts:
            parts.append(F.lit(separator))
        parts.append(F.col(column).cast("string"))
    return df.withColumn(key, F.concat(*parts))
