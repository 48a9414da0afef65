"""Day-indexed pairwise log-rank sweep.

For every cutoff day ``t`` (all observed times except the last) and every
unordered pair of groups, the Event records are re-censored as if observation
had stopped at ``t`` and the pair is compared with a two-sample log-rank test.
The resulting (cutoff x pair) table answers "from which day onward do these
two groups differ?".

Two kinds of missing p-values exist in the output and they mean different
things:

* a cell **absent** from :attr:`SweepResult.cells` was skipped because one
  group of the pair had no unit at risk at the cutoff (the test is undefined);
* a cell **present with NaN** in :meth:`SweepResult.significance_table` was
  computed but did not reach the significance threshold.

Once pivoted with :meth:`SweepResult.matrix` both show as NaN; callers that
need to tell them apart must consult the long-form tables.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import combinations, product
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from pyspark.sql import DataFrame as SparkDataFrame

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.engine import to_pandas
from mortix.core.errors import InsufficientGroupsError
from mortix.core.labels import pair_label
from mortix.core.validation import validate_events
from mortix.survival.logrank import logrank_test

logger = logging.getLogger(__name__)

CELL_COLUMNS = [
    "cutoff_time", "pair", "group_1", "group_2", "test_statistic", "p_value",
    "observed_1", "expected_1", "n_at_risk_1", "n_at_risk_2",
]


def apply_threshold(table: pd.DataFrame, threshold: float, column: str = "p_value") -> pd.DataFrame:
    """Null every p-value at or above ``threshold``; rows are kept.

    Applying the same threshold twice gives the same table.
    """
    if not 0 < threshold <= 1:
        raise ValueError(f"threshold must be in (0, 1], got {threshold}")
    out = table.copy()
    out[column] = out[column].where(out[column] < threshold)
    return out


class SweepResult:
    """Outcome of a :class:`PairwiseSweep` run.

    Attributes:
        cutoffs: Cutoff days swept, ascending.
        pairs: Pair labels swept, in sort order.
        threshold: Default significance threshold (``config.sweep_alpha``).
    """

    def __init__(self, cells: pd.DataFrame, cutoffs: List[float], pairs: List[str], threshold: float):
        self._cells = cells
        self.cutoffs = list(cutoffs)
        self.pairs = list(pairs)
        self.threshold = threshold

    @property
    def cells(self) -> pd.DataFrame:
        """Every computed cell with its raw p-value; skipped cells are absent."""
        return self._cells.copy()

    def significance_table(self, threshold: Optional[float] = None) -> pd.DataFrame:
        """Long form ``cutoff_time, pair, p_value`` with non-significant p-values nulled."""
        threshold = self.threshold if threshold is None else threshold
        table = self._cells[["cutoff_time", "pair", "p_value"]]
        return apply_threshold(table, threshold).reset_index(drop=True)

    def matrix(self, threshold: Optional[float] = None) -> pd.DataFrame:
        """Cutoff x pair table of thresholded p-values.

        The shape is fixed by the swept cutoffs and pairs whatever the
        threshold.
        """
        table = self.significance_table(threshold)
        matrix = table.pivot(index="cutoff_time", columns="pair", values="p_value")
        matrix = matrix.reindex(index=self.cutoffs, columns=self.pairs)
        matrix.index.name = "cutoff_time"
        matrix.columns.name = "pair"
        return matrix

    def p_value(self, group_a, group_b, cutoff_time: float) -> Optional[float]:
        """Raw p-value of one cell, regardless of pair order.

        Returns:
            The p-value, or None if the cell was skipped or never swept.
        """
        label = pair_label(group_a, group_b)
        match = self._cells[(self._cells["pair"] == label) & (self._cells["cutoff_time"] == cutoff_time)]
        if match.empty:
            return None
        return float(match["p_value"].iloc[0])

    def first_significant_day(self, threshold: Optional[float] = None) -> pd.DataFrame:
        """Per pair, the earliest cutoff from which every computed cell is significant.

        Returns:
            DataFrame with columns ``pair`` and ``first_significant_day``
            (NaN when the pair is not significant at its last computed cutoff).
        """
        table = self.significance_table(threshold)
        rows = []
        for pair in self.pairs:
            series = table[table["pair"] == pair].sort_values("cutoff_time")
            first = np.nan
            for cutoff, p in zip(series["cutoff_time"][::-1], series["p_value"][::-1]):
                if pd.isna(p):
                    break
                first = cutoff
            rows.append({"pair": pair, "first_significant_day": first})
        return pd.DataFrame(rows, columns=["pair", "first_significant_day"])

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "cutoffs": self.cutoffs,
            "pairs": self.pairs,
            "threshold": self.threshold,
            "cells": self._cells.to_dict(orient="records"),
        }


class PairwiseSweep:
    """Pairwise log-rank comparison at every candidate cutoff day.

    Examples:
        >>> from mortix.survival import EventExpander, PairwiseSweep
        >>> events = EventExpander().expand(observations)
        >>> result = PairwiseSweep().run(events)
        >>> result.matrix()          # p < 0.01 kept, others NaN
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def cutoffs(self, events: pd.DataFrame) -> List[float]:
        """Distinct observed times, ascending, without the final one."""
        times = np.sort(pd.unique(events[self.config.time_col].astype(float)))
        return [float(t) for t in times[:-1]]

    def pairs(self, events: pd.DataFrame) -> List[Tuple[Any, Any]]:
        """Every unordered pair of groups, members and pairs in sort order."""
        groups = sorted(pd.unique(events[self.config.group_key]), key=str)
        if len(groups) < 2:
            raise InsufficientGroupsError(groups)
        return list(combinations(groups, 2))

    def run(self, events: Union[pd.DataFrame, SparkDataFrame]) -> SweepResult:
        """Sweep every (cutoff, pair) cell.

        Args:
            events: Event records (output of EventExpander), pandas or Spark.

        Returns:
            SweepResult holding raw p-values and thresholding helpers.

        Raises:
            InsufficientGroupsError: If fewer than two groups are present.
        """
        cfg = self.config
        events = to_pandas(events)
        validate_events(events, cfg.group_key, cfg.time_col, cfg.event_col)

        pairs = self.pairs(events)
        cutoffs = self.cutoffs(events)

        # Read-only per-group arrays shared by every cell
        arrays = {
            group: (
                subset[cfg.time_col].to_numpy(dtype=np.float64),
                subset[cfg.event_col].to_numpy(dtype=np.int64),
            )
            for group, subset in events.groupby(cfg.group_key, sort=False)
        }

        tasks = list(product(cutoffs, pairs))
        if cfg.n_jobs > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(max_workers=cfg.n_jobs) as pool:
                results = list(pool.map(lambda task: self._cell(arrays, *task), tasks))
        else:
            results = [self._cell(arrays, cutoff, pair) for cutoff, pair in tasks]

        rows = [row for row in results if row is not None]
        logger.info(
            "Swept %d cutoffs x %d pairs: %d cells computed, %d skipped",
            len(cutoffs), len(pairs), len(rows), len(tasks) - len(rows),
        )

        cells = pd.DataFrame(rows, columns=CELL_COLUMNS)
        if not cells.empty:
            cells = cells.sort_values(["cutoff_time", "pair"], kind="mergesort").reset_index(drop=True)
        return SweepResult(
            cells,
            cutoffs=cutoffs,
            pairs=[pair_label(a, b) for a, b in pairs],
            threshold=cfg.sweep_alpha,
        )

    @staticmethod
    def _censor_at(durations: np.ndarray, events: np.ndarray, cutoff: float) -> Tuple[np.ndarray, np.ndarray]:
        """Re-censor at ``cutoff``: deaths after it become survivors at ``cutoff``."""
        return np.minimum(durations, cutoff), ((events == 1) & (durations <= cutoff)).astype(np.int64)

    def _cell(self, arrays, cutoff: float, pair: Tuple[Any, Any]) -> Optional[Dict[str, Any]]:
        group_1, group_2 = pair
        if group_1 not in arrays or group_2 not in arrays:
            raise InsufficientGroupsError([g for g in pair if g in arrays])
        d1, e1 = arrays[group_1]
        d2, e2 = arrays[group_2]

        at_risk_1 = int((d1 >= cutoff).sum())
        at_risk_2 = int((d2 >= cutoff).sum())
        if at_risk_1 == 0 or at_risk_2 == 0:
            logger.debug("Skipping %s at cutoff %s: no units at risk", pair_label(*pair), cutoff)
            return None

        d1_t, e1_t = self._censor_at(d1, e1, cutoff)
        d2_t, e2_t = self._censor_at(d2, e2, cutoff)
        result = logrank_test(d1_t, e1_t, d2_t, e2_t, group_1_name=group_1, group_2_name=group_2)

        return {
            "cutoff_time": cutoff,
            "pair": pair_label(group_1, group_2),
            "group_1": group_1,
            "group_2": group_2,
            "test_statistic": result.test_statistic,
            "p_value": result.p_value,
            "observed_1": result.observed_1,
            "expected_1": result.expected_1,
            "n_at_risk_1": at_risk_1,
            "n_at_risk_2": at_risk_2,
        }
