"""Survival module for mortix.

Event expansion, replicate survival fractions and the pairwise log-rank sweep.
The expander and estimator dispatch to pandas or Spark based on the input
DataFrame type; the sweep runs locally.

Example:
    >>> import pandas as pd
    >>> from mortix.survival import EventExpander, SurvivalEstimator, PairwiseSweep
    >>> obs = pd.DataFrame({
    ...     'group': ['A', 'A', 'A', 'B', 'B'],
    ...     'replicate': [1, 1, 1, 1, 1],
    ...     'time_bucket': ['1', '2', 'alive', '1', 'alive'],
    ...     'count': [2, 1, 7, 5, 5],
    ... })
    >>> events = EventExpander().expand(obs)
    >>> SurvivalEstimator().fit(obs).summary()
    >>> PairwiseSweep().run(events).cells
"""

from mortix.survival.expander import EventExpander
from mortix.survival.estimator import SurvivalEstimator
from mortix.survival.logrank import (
    LogRankResult, MultiGroupLogRankResult, logrank_test, logrank_frame, multigroup_logrank
)
from mortix.survival.sweep import PairwiseSweep, SweepResult, apply_threshold
from mortix.survival.utils import generate_mortality_counts

__all__ = [
    "EventExpander",            # Aggregated counts -> per-unit events
    "SurvivalEstimator",        # Replicate survival fractions + summary
    "PairwiseSweep",            # Cutoff x pair log-rank sweep
    "SweepResult",              # Sweep output and thresholding helpers
    "apply_threshold",          # Idempotent p-value thresholding
    "LogRankResult",            # Two-sample log-rank result dataclass
    "MultiGroupLogRankResult",  # k-sample log-rank result dataclass
    "logrank_test",
    "logrank_frame",
    "multigroup_logrank",
    "generate_mortality_counts",
]
