"""Local (pandas) survival-fraction curves, replicate summaries and
Kaplan-Meier fits via lifelines."""

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from mortix.core.config import AnalysisConfig
from mortix.core.errors import IncompleteSeriesError
from mortix.core.labels import with_group_key
from mortix.survival.buckets import parse_buckets

CURVE_COLUMNS = ["time", "deaths", "cumulative_deaths", "total", "survival_fraction"]
SUMMARY_COLUMNS = ["time", "mean", "median", "se", "min", "max", "n"]


def replicate_curves(observations: pd.DataFrame, config: AnalysisConfig) -> pd.DataFrame:
    """Survival fraction per (group, replicate) from aggregated counts.

    The series total includes the sentinel bucket, which must be present even
    with a zero count; the sentinel row itself is not part of the curve.

    Returns:
        DataFrame with the group key, replicate, time, deaths,
        cumulative_deaths, total and survival_fraction, sorted by series then
        time.

    Raises:
        IncompleteSeriesError: If a series has no sentinel bucket.
        ValueError: If a series holds no units at all.
    """
    cfg = config
    obs = with_group_key(observations, cfg.group_columns, cfg.group_key, cfg.label_separator)
    keys = [cfg.group_key, cfg.replicate_col]

    obs = obs[[*keys, cfg.bucket_col, cfg.count_col]].copy()
    obs["time"] = parse_buckets(obs[cfg.bucket_col], cfg.sentinel)
    obs["_is_sentinel"] = obs["time"].isna()

    series = obs.groupby(keys, sort=True).agg(
        total=(cfg.count_col, "sum"), has_sentinel=("_is_sentinel", "any")
    )
    incomplete = series[~series["has_sentinel"]]
    if not incomplete.empty:
        group, replicate = incomplete.index[0]
        raise IncompleteSeriesError(group, replicate, cfg.sentinel)
    empty = series[series["total"] <= 0]
    if not empty.empty:
        group, replicate = empty.index[0]
        raise ValueError(f"Series (group={group!r}, replicate={replicate!r}) contains no units")

    deaths = (
        obs[~obs["_is_sentinel"]]
        .groupby([*keys, "time"], sort=True)[cfg.count_col]
        .sum()
        .rename("deaths")
        .reset_index()
    )
    deaths["cumulative_deaths"] = deaths.groupby(keys)["deaths"].cumsum()
    curves = deaths.merge(series["total"].reset_index(), on=keys, how="left")
    curves["survival_fraction"] = 1.0 - curves["cumulative_deaths"] / curves["total"]

    for column in ("deaths", "cumulative_deaths", "total"):
        curves[column] = curves[column].astype(int)
    return curves[[*keys, *CURVE_COLUMNS]].reset_index(drop=True)


def series_totals(observations: pd.DataFrame, config: AnalysisConfig) -> pd.DataFrame:
    """Units per (group, replicate), including replicates with no deaths."""
    cfg = config
    obs = with_group_key(observations, cfg.group_columns, cfg.group_key, cfg.label_separator)
    return (
        obs.groupby([cfg.group_key, cfg.replicate_col], sort=True)[cfg.count_col]
        .sum()
        .rename("total")
        .reset_index()
    )


def summarize_curves(
    curves: pd.DataFrame,
    group_col: str,
    replicate_col: str,
    replicates: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """Cross-replicate summary of survival fractions per (group, time).

    Every replicate of a group contributes at every time of that group: a
    replicate with no deaths at a time carries its last known fraction
    forward, and 1.0 before its first death.

    Args:
        curves: Output of :func:`replicate_curves`.
        group_col: Group key column.
        replicate_col: Replicate column.
        replicates: Optional (group, replicate) table listing every replicate,
            so replicates without any death still count as fully surviving.
    """
    frames: List[pd.DataFrame] = []
    if replicates is None:
        replicates = curves[[group_col, replicate_col]].drop_duplicates()

    for group, group_replicates in replicates.groupby(group_col, sort=True):
        group_curves = curves[curves[group_col] == group]
        times = np.sort(group_curves["time"].unique())
        if len(times) == 0:
            continue

        wide = (
            group_curves.pivot(index="time", columns=replicate_col, values="survival_fraction")
            .reindex(index=times, columns=pd.unique(group_replicates[replicate_col]))
            .ffill()
            .fillna(1.0)
        )
        n = wide.shape[1]
        std = wide.std(axis=1, ddof=1) if n > 1 else pd.Series(0.0, index=wide.index)
        frames.append(pd.DataFrame({
            group_col: group,
            "time": times,
            "mean": wide.mean(axis=1).to_numpy(),
            "median": wide.median(axis=1).to_numpy(),
            "se": (std / np.sqrt(n)).to_numpy(),
            "min": wide.min(axis=1).to_numpy(),
            "max": wide.max(axis=1).to_numpy(),
            "n": n,
        }))

    if not frames:
        return pd.DataFrame(columns=[group_col, *SUMMARY_COLUMNS])
    return pd.concat(frames, ignore_index=True)


def kaplan_meier_curves(
    events: pd.DataFrame,
    group_col: str,
    time_col: str = "time",
    event_col: str = "event",
    alpha: float = 0.05,
    groups: Optional[Sequence] = None,
) -> pd.DataFrame:
    """Kaplan-Meier survival per group from unit-level Event records.

    Returns:
        DataFrame with columns: group, time, survival_probability, ci_lower,
        ci_upper, one block per group.
    """
    try:
        from lifelines import KaplanMeierFitter
    except ImportError:
        raise ImportError(
            "lifelines is required for Kaplan-Meier estimation. "
            "Install it with: pip install lifelines"
        )

    frames = []
    for group in (groups if groups is not None else sorted(events[group_col].unique(), key=str)):
        subset = events[events[group_col] == group]
        if subset.empty:
            continue
        kmf = KaplanMeierFitter()
        kmf.fit(subset[time_col], subset[event_col], label="survival_probability", alpha=alpha)

        curve = kmf.survival_function_.reset_index()
        curve.columns = ["time", "survival_probability"]
        ci = kmf.confidence_interval_
        # lifelines names CI columns '<label>_lower_<level>' / '<label>_upper_<level>'
        curve["ci_lower"] = ci.iloc[:, 0].to_numpy()
        curve["ci_upper"] = ci.iloc[:, 1].to_numpy()
        curve.insert(0, group_col, group)
        frames.append(curve)

    if not frames:
        return pd.DataFrame(columns=[group_col, "time", "survival_probability", "ci_lower", "ci_upper"])
    return pd.concat(frames, ignore_index=True)
