"""One parameterized entry point per experiment.

Each mating experiment (forced, time-delayed, cohabitation control,
semi-field) is a :class:`MortalityExperiment` with its own name and
configuration; count tables such as CFU or swarm coupling go through
:meth:`MortalityExperiment.run_factorial`.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd
from pyspark.sql import DataFrame as SparkDataFrame

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.engine import to_pandas
from mortix.statistics.factorial import FactorialGroupingEngine, FactorialResult
from mortix.survival.estimator import SurvivalEstimator
from mortix.survival.expander import EventExpander
from mortix.survival.logrank import MultiGroupLogRankResult, multigroup_logrank
from mortix.survival.sweep import PairwiseSweep, SweepResult

logger = logging.getLogger(__name__)


@dataclass
class MortalityReport:
    """Every survival-side table produced for one experiment.

    Attributes:
        name: Experiment name.
        events: Expanded Event records (pandas).
        curves: Per-replicate survival fractions (pandas).
        summary: Cross-replicate survival summary.
        sweep: Pairwise log-rank sweep result.
        significance: Cutoff x pair matrix thresholded at ``config.sweep_alpha``.
        omnibus: k-sample log-rank over the full observation period.
    """
    name: str
    events: pd.DataFrame
    curves: pd.DataFrame
    summary: pd.DataFrame
    sweep: SweepResult
    significance: pd.DataFrame
    omnibus: MultiGroupLogRankResult

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "name": self.name,
            "n_units": int(len(self.events)),
            "summary": self.summary.to_dict(orient="records"),
            "significance": self.sweep.significance_table().to_dict(orient="records"),
            "first_significant_day": self.sweep.first_significant_day().to_dict(orient="records"),
            "omnibus": self.omnibus.to_dict(),
        }


class MortalityExperiment:
    """Runs the survival analysis chain on one experiment's Observation table.

    Examples:
        >>> forced = MortalityExperiment("forced mating")
        >>> report = forced.run(observations)
        >>> report.significance
        >>> delayed = MortalityExperiment(
        ...     "time-delayed mating",
        ...     AnalysisConfig(group_cols=["treatment", "delay"]),
        ... )
    """

    def __init__(self, name: str, config: Optional[AnalysisConfig] = None) -> None:
        self.name = name
        self.config = config or DEFAULT_CONFIG

    def run(self, observations: Union[pd.DataFrame, SparkDataFrame]) -> MortalityReport:
        """Expand, estimate survival, and sweep pairwise log-rank tests.

        Raises:
            InvalidBucketError, IncompleteSeriesError, InsufficientGroupsError:
                Propagated from the components; no partial report is returned.
        """
        cfg = self.config
        logger.info("Running mortality analysis '%s'", self.name)

        estimator = SurvivalEstimator(cfg).fit(observations)
        events = to_pandas(EventExpander(cfg).expand(observations))
        sweep = PairwiseSweep(cfg).run(events)
        omnibus = multigroup_logrank(events, cfg.group_key, cfg.time_col, cfg.event_col)

        return MortalityReport(
            name=self.name,
            events=events,
            curves=to_pandas(estimator.curves()),
            summary=estimator.summary(),
            sweep=sweep,
            significance=sweep.matrix(),
            omnibus=omnibus,
        )

    def run_factorial(
        self,
        data: pd.DataFrame,
        response: str,
        factors: Union[str, Sequence[str]],
    ) -> FactorialResult:
        """Factorial grouping of a per-unit or per-replicate response table."""
        logger.info("Running factorial grouping '%s' on %s", self.name, response)
        return FactorialGroupingEngine(self.config).fit(to_pandas(data), response, factors)
