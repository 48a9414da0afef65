"""Tukey-Kramer all-pairs comparison against a fitted model's error term.

Unlike a one-way ``pairwise_tukeyhsd`` on raw groups, the standard error here
comes from the residual mean square and residual degrees of freedom of the
fitted linear model, so additive two-factor designs are tested against the
same error term as their ANOVA.
"""

from itertools import combinations
from typing import Sequence
import math
import warnings

import numpy as np
import pandas as pd
from scipy import stats

POSTHOC_COLUMNS = ["group_1", "group_2", "meandiff", "std_error", "q_statistic", "p_adj", "lower", "upper", "reject"]


def tukey_kramer(
    labels: Sequence[str],
    means: Sequence[float],
    counts: Sequence[int],
    mse: float,
    df_resid: float,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """Compare every pair of groups with the studentized range distribution.

    Args:
        labels: Group labels.
        means: Group means, aligned with ``labels``.
        counts: Observations per group, aligned with ``labels``.
        mse: Residual mean square of the fitted model.
        df_resid: Residual degrees of freedom of the fitted model.
        alpha: Family-wise error rate for the intervals and the reject flag.

    Returns:
        DataFrame with one row per pair (``group_1 < group_2`` in label order):
        ``meandiff`` (group_2 - group_1), ``std_error``, ``q_statistic``,
        ``p_adj``, simultaneous ``lower``/``upper`` bounds and ``reject``.
    """
    k = len(labels)
    if not (len(means) == len(counts) == k):
        raise ValueError("labels, means and counts must have the same length")
    if k < 2:
        return pd.DataFrame(columns=POSTHOC_COLUMNS)
    if df_resid <= 0:
        raise ValueError(f"Residual degrees of freedom must be positive, got {df_resid}")

    table = pd.DataFrame({"mean": np.asarray(means, dtype=float), "n": np.asarray(counts, dtype=float)},
                         index=[str(label) for label in labels]).sort_index()

    if mse <= 0:
        warnings.warn(
            "Residual mean square is zero; every non-zero mean difference is "
            "reported as significant."
        )

    q_crit = float(stats.studentized_range.ppf(1 - alpha, k, df_resid))

    rows = []
    for first, second in combinations(table.index, 2):
        diff = table.at[second, "mean"] - table.at[first, "mean"]
        se = math.sqrt(max(mse, 0.0) / 2.0 * (1.0 / table.at[first, "n"] + 1.0 / table.at[second, "n"]))
        if se > 0:
            q = abs(diff) / se
            p_adj = float(stats.studentized_range.sf(q, k, df_resid))
        else:
            q = math.inf if diff != 0 else 0.0
            p_adj = 0.0 if diff != 0 else 1.0
        p_adj = min(max(p_adj, 0.0), 1.0)
        rows.append({
            "group_1": first,
            "group_2": second,
            "meandiff": float(diff),
            "std_error": se,
            "q_statistic": q,
            "p_adj": p_adj,
            "lower": float(diff - q_crit * se),
            "upper": float(diff + q_crit * se),
            "reject": p_adj < alpha,
        })
    return pd.DataFrame(rows, columns=POSTHOC_COLUMNS)
