"""
Unified Survival-Fraction Estimator.

This module provides a single interface for replicate survival curves that
dispatches to the local (pandas) or distributed (Spark) implementation based
on the input DataFrame type. Cross-replicate summaries are always computed
locally: they are sized by groups x days x replicates, never by units.
"""

import logging
from typing import Any, Dict, Optional, Union

import pandas as pd
from pyspark.sql import DataFrame as SparkDataFrame

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.engine import get_backend, to_pandas
from mortix.core.validation import validate_events, validate_observations
from mortix.survival import local_impl, spark_impl

logger = logging.getLogger(__name__)


class SurvivalEstimator:
    """Survival fractions per (group, replicate) and their replicate summary.

    Survival fractions are computed directly from the aggregated cumulative
    counts: ``1 - cumulative_deaths / series_total``, where the series total
    includes the end-of-observation sentinel bucket.

    Attributes:
        backend: The detected backend ("pandas" or "spark").
        config: Column names and sentinel used to read the Observation table.

    Examples:
        >>> import pandas as pd
        >>> from mortix.survival import SurvivalEstimator
        >>> obs = pd.DataFrame({
        ...     'group': ['A', 'A', 'A', 'B', 'B'],
        ...     'replicate': [1, 1, 1, 1, 1],
        ...     'time_bucket': ['1', '2', 'alive', '1', 'alive'],
        ...     'count': [2, 1, 7, 5, 5],
        ... })
        >>> estimator = SurvivalEstimator().fit(obs)
        >>> estimator.curves()['survival_fraction'].tolist()
        [0.8, 0.7, 0.5]
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """Initialize the SurvivalEstimator."""
        self.config = config or DEFAULT_CONFIG
        self.backend: Optional[str] = None
        self._curves: Optional[Union[pd.DataFrame, SparkDataFrame]] = None
        self._totals: Optional[pd.DataFrame] = None
        self._summary: Optional[pd.DataFrame] = None
        self._is_fitted: bool = False

    def fit(self, observations: Union[pd.DataFrame, SparkDataFrame]) -> "SurvivalEstimator":
        """Compute replicate curves from an Observation table.

        Args:
            observations: Aggregated counts (pandas or PySpark).

        Returns:
            Self for method chaining.

        Raises:
            IncompleteSeriesError: If a (group, replicate) series lacks its
                sentinel bucket.
            InvalidBucketError: If a bucket cannot be parsed.
            TypeError: If observations is not a pandas or PySpark DataFrame.
        """
        validate_observations(observations, self.config)
        self.backend = get_backend(observations)

        if self.backend == "pandas":
            self._curves = local_impl.replicate_curves(observations, self.config)
            self._totals = local_impl.series_totals(observations, self.config)
        else:
            self._curves = spark_impl.replicate_curves(observations, self.config)
            self._totals = spark_impl.series_totals(observations, self.config).toPandas()

        self._summary = None
        self._is_fitted = True
        logger.debug(
            "Fitted survival curves for %d series on %s backend", len(self._totals), self.backend
        )
        return self

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise ValueError("Model has not been fitted. Call fit() first.")

    def curves(self) -> Union[pd.DataFrame, SparkDataFrame]:
        """Per-replicate survival curves in the backend of the fitted input.

        Returns:
            DataFrame with columns: group key, replicate, time, deaths,
            cumulative_deaths, total, survival_fraction.
        """
        self._check_fitted()
        return self._curves

    def summary(self) -> pd.DataFrame:
        """Cross-replicate summary per (group, time).

        Returns:
            pandas DataFrame with columns: group key, time, mean, median, se,
            min, max, n.
        """
        self._check_fitted()
        if self._summary is None:
            curves = to_pandas(self._curves)
            self._summary = local_impl.summarize_curves(
                curves,
                group_col=self.config.group_key,
                replicate_col=self.config.replicate_col,
                replicates=self._totals[[self.config.group_key, self.config.replicate_col]],
            )
        return self._summary.copy()

    def mortality_summary(self) -> pd.DataFrame:
        """The replicate summary expressed as cumulative mortality ``1 - S``.

        ``min`` and ``max`` swap roles under the transform; ``se`` is unchanged.
        """
        summary = self.summary()
        mortality = summary.copy()
        mortality["mean"] = 1.0 - summary["mean"]
        mortality["median"] = 1.0 - summary["median"]
        mortality["min"] = 1.0 - summary["max"]
        mortality["max"] = 1.0 - summary["min"]
        return mortality

    def kaplan_meier(self, events: Union[pd.DataFrame, SparkDataFrame], alpha: float = 0.05) -> pd.DataFrame:
        """Kaplan-Meier curves per group from expanded Event records.

        Args:
            events: Output of :class:`~mortix.survival.EventExpander`.
            alpha: One minus the confidence level of the pointwise band.
        """
        events = to_pandas(events)
        cfg = self.config
        validate_events(events, cfg.group_key, cfg.time_col, cfg.event_col)
        return local_impl.kaplan_meier_curves(
            events, cfg.group_key, time_col=cfg.time_col, event_col=cfg.event_col, alpha=alpha
        )

    def stats(self) -> Dict[str, Any]:
        """Counts describing the fitted input."""
        self._check_fitted()
        totals = self._totals
        return {
            "n_groups": int(totals[self.config.group_key].nunique()),
            "n_series": int(len(totals)),
            "n_units": int(totals["total"].sum()),
            "backend": self.backend,
        }

    @property
    def is_fitted(self) -> bool:
        """Whether the estimator has been fitted."""
        return self._is_fitted
