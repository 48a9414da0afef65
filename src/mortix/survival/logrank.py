"""Log-rank tests on censored time-to-event data.

The two-sample test follows the classic construction: at every distinct
event time, compare the observed deaths in group 1 with those expected if
both groups shared one hazard, accumulate the hypergeometric variance, and
refer ``(O - E)^2 / V`` to a chi-square distribution with one degree of
freedom.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence
import math

import numpy as np
import pandas as pd
from scipy import stats

from mortix.core.errors import InsufficientGroupsError


@dataclass
class LogRankResult:
    """Result of a log-rank test comparing two survival curves.

    Attributes:
        test_statistic: The chi-square test statistic.
        p_value: Upper-tail chi-square p-value.
        degrees_of_freedom: Number of groups minus one (1 for two groups).
        observed_1: Deaths observed in group 1.
        expected_1: Deaths expected in group 1 under the null hypothesis.
        n_group_1: Units in group 1.
        n_group_2: Units in group 2.
        group_1_name: Name of the first group.
        group_2_name: Name of the second group.
    """
    test_statistic: float
    p_value: float
    degrees_of_freedom: int = 1
    observed_1: float = 0.0
    expected_1: float = 0.0
    n_group_1: int = 0
    n_group_2: int = 0
    group_1_name: str = "group_1"
    group_2_name: str = "group_2"

    def significant(self, alpha: float) -> bool:
        """Whether the p-value is below ``alpha``."""
        return self.p_value < alpha

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "test_statistic": self.test_statistic,
            "p_value": self.p_value,
            "degrees_of_freedom": self.degrees_of_freedom,
            "observed_1": self.observed_1,
            "expected_1": self.expected_1,
            "n_group_1": self.n_group_1,
            "n_group_2": self.n_group_2,
            "group_1_name": self.group_1_name,
            "group_2_name": self.group_2_name,
        }


def logrank_test(
    durations_1: Sequence[float],
    events_1: Sequence[int],
    durations_2: Sequence[float],
    events_2: Sequence[int],
    group_1_name: str = "group_1",
    group_2_name: str = "group_2",
) -> LogRankResult:
    """Two-sample log-rank test.

    Args:
        durations_1: Event or censoring times of group 1.
        events_1: 1 where the unit of group 1 died, 0 where it was censored.
        durations_2: Event or censoring times of group 2.
        events_2: Event indicators of group 2.

    Returns:
        LogRankResult with one degree of freedom. With no deaths at all the
        statistic is 0 and the p-value 1.
    """
    d1 = np.asarray(durations_1, dtype=np.float64)
    e1 = np.asarray(events_1, dtype=np.int64)
    d2 = np.asarray(durations_2, dtype=np.float64)
    e2 = np.asarray(events_2, dtype=np.int64)

    # Only times with at least one death contribute
    death_times = np.unique(np.concatenate([d1[e1 == 1], d2[e2 == 1]]))

    O1_sum = 0.0
    E1_sum = 0.0
    V1_sum = 0.0

    for t in death_times:
        o1 = e1[d1 == t].sum()
        o2 = e2[d2 == t].sum()
        Oj = o1 + o2

        n1 = (d1 >= t).sum()
        n2 = (d2 >= t).sum()
        Nj = n1 + n2

        if Nj > 0 and Oj > 0:
            E1_sum += Oj * (n1 / Nj)
            if Nj > 1:
                V1_sum += (n1 * n2 * Oj * (Nj - Oj)) / (Nj * Nj * (Nj - 1))
            O1_sum += o1

    if V1_sum > 0:
        Z = (O1_sum - E1_sum) / math.sqrt(V1_sum)
        chi_square = Z * Z
    else:
        chi_square = 0.0

    p_value = float(stats.chi2.sf(chi_square, df=1))

    return LogRankResult(
        test_statistic=float(chi_square),
        p_value=p_value,
        degrees_of_freedom=1,
        observed_1=float(O1_sum),
        expected_1=float(E1_sum),
        n_group_1=int(len(d1)),
        n_group_2=int(len(d2)),
        group_1_name=str(group_1_name),
        group_2_name=str(group_2_name),
    )


def logrank_frame(
    df: pd.DataFrame,
    group_col: str,
    time_col: str = "time",
    event_col: str = "event",
) -> LogRankResult:
    """Two-sample log-rank test on a tidy table holding exactly two groups.

    Groups are taken in sort order, so the result does not depend on row order.

    Raises:
        InsufficientGroupsError: If fewer than two groups are present.
        ValueError: If more than two groups are present.
    """
    groups = sorted(pd.unique(df[group_col]), key=str)
    if len(groups) < 2:
        raise InsufficientGroupsError(groups)
    if len(groups) > 2:
        raise ValueError(
            f"Group column must have exactly 2 unique values, "
            f"found {len(groups)}: {groups}"
        )
    first = df[df[group_col] == groups[0]]
    second = df[df[group_col] == groups[1]]
    return logrank_test(
        first[time_col].to_numpy(), first[event_col].to_numpy(),
        second[time_col].to_numpy(), second[event_col].to_numpy(),
        group_1_name=groups[0], group_2_name=groups[1],
    )


@dataclass
class MultiGroupLogRankResult:
    """Omnibus log-rank test across k groups (k - 1 degrees of freedom)."""
    test_statistic: float
    p_value: float
    degrees_of_freedom: int
    groups: List[str]
    observed: List[float]
    expected: List[float]

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "test_statistic": self.test_statistic,
            "p_value": self.p_value,
            "degrees_of_freedom": self.degrees_of_freedom,
            "groups": list(self.groups),
            "observed": list(self.observed),
            "expected": list(self.expected),
        }


def multigroup_logrank(
    df: pd.DataFrame,
    group_col: str,
    time_col: str = "time",
    event_col: str = "event",
) -> MultiGroupLogRankResult:
    """k-sample log-rank test: does any group's hazard differ?

    The statistic is ``(O - E)' V^- (O - E)`` over the first ``k - 1`` groups,
    where ``V`` is the hypergeometric covariance of the death counts.

    Raises:
        InsufficientGroupsError: If fewer than two groups are present.
    """
    groups = sorted(pd.unique(df[group_col]), key=str)
    k = len(groups)
    if k < 2:
        raise InsufficientGroupsError(groups)

    durations = df[time_col].to_numpy(dtype=np.float64)
    events = df[event_col].to_numpy(dtype=np.int64)
    membership = np.stack([(df[group_col] == g).to_numpy() for g in groups])

    observed = np.zeros(k)
    expected = np.zeros(k)
    covariance = np.zeros((k, k))

    for t in np.unique(durations[events == 1]):
        at_risk = (membership & (durations >= t)).sum(axis=1).astype(float)
        deaths = (membership & (durations == t) & (events == 1)).sum(axis=1).astype(float)
        n = at_risk.sum()
        d = deaths.sum()
        if n <= 0 or d <= 0:
            continue
        share = at_risk / n
        observed += deaths
        expected += d * share
        if n > 1:
            scale = d * (n - d) / (n - 1)
            covariance += scale * (np.diag(share) - np.outer(share, share))

    diff = (observed - expected)[:-1]
    reduced = covariance[:-1, :-1]
    if np.allclose(reduced, 0):
        statistic = 0.0
    else:
        statistic = float(diff @ np.linalg.pinv(reduced) @ diff)

    return MultiGroupLogRankResult(
        test_statistic=statistic,
        p_value=float(stats.chi2.sf(statistic, df=k - 1)),
        degrees_of_freedom=k - 1,
        groups=[str(g) for g in groups],
        observed=observed.tolist(),
        expected=expected.tolist(),
    )
