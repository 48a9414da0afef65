"""Analysis configuration shared by every mortix component."""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Union

HORIZON_POLICIES = ("max_observed", "fixed")


@dataclass(frozen=True)
class AnalysisConfig:
    """Explicit parameters for one analysis call.

    Attributes:
        sweep_alpha: Significance threshold for the pairwise log-rank sweep.
            P-values at or above it are reported as null.
        posthoc_alpha: Family-wise error rate for the Tukey post-hoc grouping.
        sentinel: Time-bucket value meaning "still alive at end of observation".
        horizon_policy: ``"max_observed"`` maps the sentinel to the last finite
            time of its series; ``"fixed"`` maps it to ``horizon``.
        horizon: Censoring time used when ``horizon_policy == "fixed"``.
        n_jobs: Worker threads for the sweep. 1 computes cells inline.
        posthoc_requires_significance: Skip post-hoc grouping when no factor
            is significant in the omnibus F-test.
        group_cols: Column(s) holding the group label. Two columns form a
            two-factor group.
        replicate_col: Replicate identifier column.
        bucket_col: Raw time-bucket column (day index or sentinel).
        count_col: Aggregated count column.
        time_col: Numeric time column of expanded events.
        event_col: Event indicator column of expanded events (1=death, 0=censored).
        label_separator: Joins multi-factor levels into a single group label.
        label_col: Column receiving the joined label when two group columns
            are configured.
    """

    sweep_alpha: float = 0.01
    posthoc_alpha: float = 0.05
    sentinel: str = "alive"
    horizon_policy: str = "max_observed"
    horizon: Optional[float] = None
    n_jobs: int = 1
    posthoc_requires_significance: bool = False
    group_cols: Union[str, Sequence[str]] = "group"
    replicate_col: str = "replicate"
    bucket_col: str = "time_bucket"
    count_col: str = "count"
    time_col: str = "time"
    event_col: str = "event"
    label_separator: str = ":"
    label_col: str = "label"

    def __post_init__(self) -> None:
        if not 0 < self.sweep_alpha < 1:
            raise ValueError(f"sweep_alpha must be in (0, 1), got {self.sweep_alpha}")
        if not 0 < self.posthoc_alpha < 1:
            raise ValueError(f"posthoc_alpha must be in (0, 1), got {self.posthoc_alpha}")
        if self.horizon_policy not in HORIZON_POLICIES:
            raise ValueError(
                f"Invalid horizon_policy '{self.horizon_policy}'. "
                f"Use one of {HORIZON_POLICIES}."
            )
        if self.horizon_policy == "fixed":
            if self.horizon is None:
                raise ValueError("horizon is required when horizon_policy='fixed'")
            if self.horizon < 0:
                raise ValueError(f"horizon must be non-negative, got {self.horizon}")
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}")
        if not 1 <= len(self.group_columns) <= 2:
            raise ValueError(
                f"group_cols must name 1 or 2 columns, got {list(self.group_columns)}"
            )

    @property
    def group_columns(self) -> List[str]:
        """Group columns as a list, whether configured as a string or sequence."""
        if isinstance(self.group_cols, str):
            return [self.group_cols]
        return list(self.group_cols)

    @property
    def group_key(self) -> str:
        """Single column identifying a group: the group column itself, or
        ``label_col`` when the group is a combination of two factors."""
        columns = self.group_columns
        return columns[0] if len(columns) == 1 else self.label_col

    def with_options(self, **changes) -> "AnalysisConfig":
        """Return a copy with ``changes`` applied (validation re-runs)."""
        return replace(self, **changes)


DEFAULT_CONFIG = AnalysisConfig()
