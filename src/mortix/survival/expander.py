"""Expansion of aggregated mortality counts into per-unit event records.

Each Observation row ``(group, replicate, time_bucket, count=k)`` becomes
``k`` identical Event rows ``(group, replicate, time, event)``. Day buckets
become deaths (``event=1``) at that day; the end-of-observation sentinel
becomes right-censored units (``event=0``) at the series horizon.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from pyspark.sql import DataFrame as SparkDataFrame
from pyspark.sql import Window
from pyspark.sql import functions as F

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.engine import BackendType, get_backend
from mortix.core.errors import InvalidBucketError
from mortix.core.labels import with_group_key, with_spark_group_key
from mortix.core.validation import validate_observations
from mortix.survival.buckets import (
    bucket_time_column, check_spark_buckets, is_sentinel_column, parse_buckets
)

logger = logging.getLogger(__name__)


class EventExpander:
    """Turns an Observation table into one Event record per unit.

    The output holds the group column(s) (plus ``config.label_col`` for
    two-factor groups), the replicate column, a float ``time`` column and an
    integer ``event`` column. Pandas input yields pandas output; Spark input
    yields a lazily evaluated Spark DataFrame.

    Examples:
        >>> import pandas as pd
        >>> from mortix.survival import EventExpander
        >>> obs = pd.DataFrame({
        ...     'group': ['A', 'A', 'A'],
        ...     'replicate': [1, 1, 1],
        ...     'time_bucket': ['1', '2', 'alive'],
        ...     'count': [2, 1, 7],
        ... })
        >>> events = EventExpander().expand(obs)
        >>> len(events)
        10
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def expand(self, observations: BackendType) -> BackendType:
        """Expand ``observations`` into Event records.

        Raises:
            InvalidBucketError: If a bucket is neither numeric nor the
                sentinel, or the sentinel cannot be mapped to a time.
            ValueError: If required columns are missing or counts are invalid.
        """
        validate_observations(observations, self.config)
        if get_backend(observations) == "spark":
            return self._expand_spark(observations)
        return self._expand_pandas(observations)

    def _series_keys(self):
        return [*self.config.group_columns, self.config.replicate_col]

    def _expand_pandas(self, observations: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        keys = self._series_keys()

        obs = observations[[*keys, cfg.bucket_col, cfg.count_col]].copy()
        obs["_parsed"] = parse_buckets(obs[cfg.bucket_col], cfg.sentinel)
        sentinel_mask = obs["_parsed"].isna()

        finite = obs.loc[~sentinel_mask, "_parsed"]
        if cfg.horizon_policy == "fixed":
            if len(finite) and finite.max() > cfg.horizon:
                raise InvalidBucketError(
                    finite.max(), f"observed after the fixed horizon {cfg.horizon}"
                )
            sentinel_time = pd.Series(float(cfg.horizon), index=obs.index)
        else:
            # Last finite day of each series; series with deaths only on the
            # sentinel fall back to the experiment-wide last day.
            sentinel_time = obs.groupby(keys, dropna=False)["_parsed"].transform("max")
            if sentinel_mask.any() and sentinel_time[sentinel_mask].isna().any():
                if finite.empty:
                    raise InvalidBucketError(
                        cfg.sentinel, "no finite time bucket to map the sentinel onto"
                    )
                sentinel_time = sentinel_time.fillna(finite.max())

        obs[cfg.time_col] = np.where(sentinel_mask, sentinel_time, obs["_parsed"])
        obs[cfg.event_col] = (~sentinel_mask).astype(int)

        counts = obs[cfg.count_col].astype(int).to_numpy()
        events = (
            obs.loc[obs.index.repeat(counts), [*keys, cfg.time_col, cfg.event_col]]
            .reset_index(drop=True)
        )
        events[cfg.time_col] = events[cfg.time_col].astype(float)

        logger.debug(
            "Expanded %d observation rows into %d event records (%d censored)",
            len(obs), len(events), int((events[cfg.event_col] == 0).sum()),
        )
        return with_group_key(events, cfg.group_columns, cfg.group_key, cfg.label_separator)

    def _expand_spark(self, observations: SparkDataFrame) -> SparkDataFrame:
        cfg = self.config
        keys = self._series_keys()
        bucket = F.col(cfg.bucket_col)

        check_spark_buckets(observations, cfg.bucket_col, cfg.sentinel)

        obs = observations.withColumn("_is_sentinel", is_sentinel_column(bucket, cfg.sentinel))
        obs = obs.withColumn("_parsed", bucket_time_column(bucket, cfg.sentinel))

        global_max = obs.agg(F.max("_parsed")).collect()[0][0]

        if cfg.horizon_policy == "fixed":
            if global_max is not None and global_max > cfg.horizon:
                raise InvalidBucketError(global_max, f"observed after the fixed horizon {cfg.horizon}")
            sentinel_time = F.lit(float(cfg.horizon))
        else:
            has_sentinel = obs.filter(F.col("_is_sentinel")).first() is not None
            if has_sentinel and global_max is None:
                raise InvalidBucketError(cfg.sentinel, "no finite time bucket to map the sentinel onto")
            series_window = Window.partitionBy(*keys)
            sentinel_time = F.coalesce(
                F.max("_parsed").over(series_window), F.lit(global_max).cast("double")
            )

        events = (
            obs.withColumn(
                cfg.time_col,
                F.when(F.col("_is_sentinel"), sentinel_time).otherwise(F.col("_parsed")).cast("double"),
            )
            .withColumn(cfg.event_col, F.when(F.col("_is_sentinel"), 0).otherwise(1).cast("int"))
            # array_repeat(x, 0) is empty, so zero-count rows vanish on explode
            .withColumn("_unit", F.explode(F.array_repeat(F.lit(1), F.col(cfg.count_col).cast("int"))))
            .select(*keys, cfg.time_col, cfg.event_col)
        )

        return with_spark_group_key(events, cfg.group_columns, cfg.group_key, cfg.label_separator)
