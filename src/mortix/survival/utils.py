"""Synthetic mortality-count generators."""

from typing import Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.types import LongType, StringType, StructField, StructType


def generate_mortality_counts(
    groups: Union[Sequence[str], Dict[str, float]] = ("control", "treated"),
    n_replicates: int = 3,
    n_units: int = 20,
    n_days: int = 10,
    daily_hazard: float = 0.05,
    sentinel: str = "alive",
    seed: Optional[int] = None,
    spark: Optional[SparkSession] = None,
) -> Union[pd.DataFrame, DataFrame]:
    """Generate an aggregated Observation table of daily deaths.

    Every (group, replicate) cohort starts with ``n_units`` units; each day
    every survivor dies with the group's daily hazard. Days without deaths
    are omitted, as in hand-recorded mortality sheets, and survivors at the
    end are reported under the ``sentinel`` bucket (always present, even
    when zero).

    Args:
        groups: Group names, or a mapping of group name to its daily hazard.
        n_replicates: Replicate cohorts per group.
        n_units: Units per cohort.
        n_days: Observation length in days.
        daily_hazard: Daily death probability for groups given as a sequence.
        sentinel: Bucket label for survivors.
        seed: Random seed for reproducibility.
        spark: When given, the table is returned as a Spark DataFrame.

    Returns:
        DataFrame with columns: group (str), replicate (int),
        time_bucket (str), count (int).

    Raises:
        ValueError: If a hazard is not in [0, 1] or a size is not positive.
    """
    hazards = dict(groups) if isinstance(groups, dict) else {g: daily_hazard for g in groups}
    for group, hazard in hazards.items():
        if not 0 <= hazard <= 1:
            raise ValueError(f"Hazard for group {group!r} must be in [0, 1], got {hazard}")
    if n_replicates < 1 or n_units < 1 or n_days < 1:
        raise ValueError("n_replicates, n_units and n_days must be positive")

    rng = np.random.default_rng(seed)
    rows = []
    for group, hazard in hazards.items():
        for replicate in range(1, n_replicates + 1):
            alive = n_units
            for day in range(1, n_days + 1):
                deaths = int(rng.binomial(alive, hazard))
                if deaths:
                    rows.append((str(group), replicate, str(day), deaths))
                alive -= deaths
            rows.append((str(group), replicate, sentinel, alive))

    if spark is None:
        return pd.DataFrame(rows, columns=["group", "replicate", "time_bucket", "count"])

    schema = StructType(
        [
            StructField("group", StringType(), False),
            StructField("replicate", LongType(), False),
            StructField("time_bucket", StringType(), False),
            StructField("count", LongType(), False),
        ]
    )
    return spark.createDataFrame(rows, schema=schema)
