"""Distributed survival-fraction curves using PySpark.

The Observation table is aggregated per (group, replicate, time) and the
running death count is computed with a window cumulative sum, the same
Map-Window-Reduce pattern a distributed Kaplan-Meier uses for its risk sets.
"""

from pyspark.sql import DataFrame, Window
from pyspark.sql import functions as F

from mortix.core.config import AnalysisConfig
from mortix.core.errors import IncompleteSeriesError
from mortix.core.labels import with_spark_group_key
from mortix.survival.buckets import bucket_time_column, check_spark_buckets, is_sentinel_column


def replicate_curves(observations: DataFrame, config: AnalysisConfig) -> DataFrame:
    """Survival fraction per (group, replicate) on Spark.

    Returns:
        DataFrame with the group key, replicate, time, deaths,
        cumulative_deaths, total and survival_fraction columns.

    Raises:
        IncompleteSeriesError: If a series has no sentinel bucket.
        InvalidBucketError: If a bucket is neither numeric nor the sentinel.
        ValueError: If a series holds no units at all.
    """
    cfg = config
    keys = [cfg.group_key, cfg.replicate_col]
    bucket = F.col(cfg.bucket_col)

    check_spark_buckets(observations, cfg.bucket_col, cfg.sentinel)

    obs = with_spark_group_key(observations, cfg.group_columns, cfg.group_key, cfg.label_separator)
    obs = obs.withColumn("_is_sentinel", is_sentinel_column(bucket, cfg.sentinel))
    obs = obs.withColumn("time", bucket_time_column(bucket, cfg.sentinel))

    # Step 1: series denominators and sentinel presence in a single pass
    series = obs.groupBy(*keys).agg(
        F.sum(cfg.count_col).alias("total"),
        F.max(F.col("_is_sentinel").cast("int")).alias("has_sentinel"),
    ).cache()

    try:
        incomplete = series.filter(F.col("has_sentinel") == 0).first()
        if incomplete is not None:
            raise IncompleteSeriesError(incomplete[cfg.group_key], incomplete[cfg.replicate_col], cfg.sentinel)
        empty = series.filter(F.col("total") <= 0).first()
        if empty is not None:
            raise ValueError(
                f"Series (group={empty[cfg.group_key]!r}, replicate={empty[cfg.replicate_col]!r}) "
                "contains no units"
            )
    finally:
        series.unpersist()

    # Step 2: deaths per day, sentinel excluded
    deaths = (
        obs.filter(~F.col("_is_sentinel"))
        .groupBy(*keys, "time")
        .agg(F.sum(cfg.count_col).alias("deaths"))
    )

    # Step 3: running deaths within each series (Window)
    window_spec = (
        Window.partitionBy(*keys)
        .orderBy("time")
        .rowsBetween(Window.unboundedPreceding, Window.currentRow)
    )
    deaths = deaths.withColumn("cumulative_deaths", F.sum("deaths").over(window_spec))

    # Step 4: survival fraction against the series total
    curves = deaths.join(series.select(*keys, "total"), on=keys, how="left")
    curves = curves.withColumn(
        "survival_fraction",
        1.0 - F.col("cumulative_deaths").cast("double") / F.col("total").cast("double"),
    )

    return curves.select(
        *keys,
        F.col("time").cast("double").alias("time"),
        F.col("deaths").cast("long").alias("deaths"),
        F.col("cumulative_deaths").cast("long").alias("cumulative_deaths"),
        F.col("total").cast("long").alias("total"),
        "survival_fraction",
    ).orderBy(*keys, "time")


def series_totals(observations: DataFrame, config: AnalysisConfig) -> DataFrame:
    """Units per (group, replicate) on Spark."""
    obs = with_spark_group_key(observations, config.group_columns, config.group_key, config.label_separator)
    return obs.groupBy(config.group_key, config.replicate_col).agg(
        F.sum(config.count_col).alias("total")
    )
