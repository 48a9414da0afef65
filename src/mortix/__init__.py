"""mortix - grouped mortality and factorial count comparisons.

mortix answers two recurring questions about grouped experimental counts:
do the groups differ in survival over time (and from which day onward), and
which factor-level combinations are statistically indistinguishable.

Example:
    >>> import pandas as pd
    >>> from mortix import MortalityExperiment, FactorialGroupingEngine
    >>>
    >>> # Daily deaths per cohort, survivors under the "alive" bucket
    >>> obs = pd.DataFrame({
    ...     'group': ['A', 'A', 'A', 'B', 'B'],
    ...     'replicate': [1, 1, 1, 1, 1],
    ...     'time_bucket': ['1', '2', 'alive', '1', 'alive'],
    ...     'count': [2, 1, 7, 5, 5],
    ... })
    >>> report = MortalityExperiment("forced mating").run(obs)
    >>> print(report.summary)
    >>>
    >>> # Letter-coded homogeneous subsets for a two-factor count table
    >>> result = FactorialGroupingEngine().fit(cfu, response='cfu', factors=['treatment', 'sex'])
    >>> print(result.groups)
"""

__version__ = "0.1.0"

from mortix.core import (
    AnalysisConfig,
    MortixError,
    InvalidBucketError,
    IncompleteSeriesError,
    InsufficientGroupsError,
    DegenerateDesignError,
)
from mortix.survival import (
    EventExpander,
    SurvivalEstimator,
    PairwiseSweep,
    SweepResult,
    LogRankResult,
    apply_threshold,
)
from mortix.statistics import FactorialGroupingEngine, FactorialResult
from mortix.experiment import MortalityExperiment, MortalityReport

__all__ = [
    "AnalysisConfig",           # Thresholds, sentinel policy, column names
    "EventExpander",            # Counts -> per-unit event records
    "SurvivalEstimator",        # Replicate survival fractions + summary
    "PairwiseSweep",            # Day x pair log-rank sweep
    "SweepResult",
    "LogRankResult",
    "apply_threshold",
    "FactorialGroupingEngine",  # ANOVA + Tukey letters
    "FactorialResult",
    "MortalityExperiment",      # One experiment, end to end
    "MortalityReport",
    "MortixError",
    "InvalidBucketError",
    "IncompleteSeriesError",
    "InsufficientGroupsError",
    "DegenerateDesignError",
]
