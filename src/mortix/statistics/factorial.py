"""Factorial Grouping Engine.

Fits ``response ~ C(A) [+ C(B)]`` (additive, no interaction), reports the
sequential ANOVA table, compares every observed factor-level combination with
Tukey-Kramer against the model's error term and condenses the outcome into
compact letters: combinations sharing a letter are not distinguishable at the
configured family-wise error rate.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
import statsmodels.api as sm
from statsmodels.formula.api import ols

from mortix.core.config import AnalysisConfig, DEFAULT_CONFIG
from mortix.core.errors import DegenerateDesignError
from mortix.core.labels import combine_labels, pair_label
from mortix.core.validation import validate_factorial
from mortix.statistics.letters import compact_letters, order_groups
from mortix.statistics.tukey import POSTHOC_COLUMNS, tukey_kramer

logger = logging.getLogger(__name__)

ANOVA_COLUMNS = ["df", "sum_sq", "mean_sq", "F", "p_value"]


@dataclass
class FactorialResult:
    """Outcome of one factorial grouping.

    Attributes:
        response: Name of the response column.
        factors: Factor column names, in model order.
        anova: Sequential ANOVA table indexed by factor name plus ``Residual``,
            columns ``df, sum_sq, mean_sq, F, p_value``.
        groups: One row per observed combination: factor columns, ``label``,
            ``mean``, ``n``, ``std``, ``letters``; ordered by mean descending.
        posthoc: Tukey-Kramer pairwise table (empty when skipped).
        mse: Residual mean square.
        df_resid: Residual degrees of freedom.
        alpha: Family-wise error rate used for the post-hoc test.
        posthoc_run: False when post-hoc was skipped for lack of an omnibus effect.
    """
    response: str
    factors: List[str]
    anova: pd.DataFrame
    groups: pd.DataFrame
    posthoc: pd.DataFrame
    mse: float
    df_resid: float
    alpha: float
    posthoc_run: bool = True

    def factor_p_values(self) -> Dict[str, float]:
        """Omnibus F-test p-value per factor."""
        return {factor: float(self.anova.at[factor, "p_value"]) for factor in self.factors}

    def letters(self) -> Dict[str, str]:
        """Mapping combination label -> letters."""
        return dict(zip(self.groups["label"], self.groups["letters"]))

    def compare(self, first: str, second: str) -> Optional[Dict[str, Any]]:
        """Post-hoc row for two combination labels, regardless of order."""
        if self.posthoc.empty:
            return None
        a, b = sorted((str(first), str(second)))
        match = self.posthoc[(self.posthoc["group_1"] == a) & (self.posthoc["group_2"] == b)]
        if match.empty:
            return None
        row = match.iloc[0].to_dict()
        row["pair"] = pair_label(a, b)
        return row

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "response": self.response,
            "factors": list(self.factors),
            "anova": self.anova.reset_index().rename(columns={"index": "source"}).to_dict(orient="records"),
            "groups": self.groups.to_dict(orient="records"),
            "posthoc": self.posthoc.to_dict(orient="records"),
            "mse": self.mse,
            "df_resid": self.df_resid,
            "alpha": self.alpha,
            "posthoc_run": self.posthoc_run,
        }


class FactorialGroupingEngine:
    """One- or two-factor ANOVA with letter-coded post-hoc grouping.

    Examples:
        >>> engine = FactorialGroupingEngine()
        >>> result = engine.fit(cfu, response="cfu", factors=["treatment", "sex"])
        >>> result.groups[["label", "mean", "n", "letters"]]
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def fit(
        self,
        data: pd.DataFrame,
        response: str,
        factors: Union[str, Sequence[str]],
    ) -> FactorialResult:
        """Fit the additive model and group the factor-level combinations.

        Args:
            data: One row per unit (or per replicate aggregate).
            response: Numeric response column.
            factors: One or two categorical factor columns.

        Raises:
            DegenerateDesignError: If any observed combination has fewer than
                two observations.
            ValueError: If columns are missing, the response is not numeric, or
                a factor level contains the label separator.
        """
        factors = [factors] if isinstance(factors, str) else list(factors)
        validate_factorial(data, response, factors)
        cfg = self.config

        frame = data[[response, *factors]].copy()
        frame["_label"] = combine_labels(frame, factors, cfg.label_separator)

        cells = frame.groupby("_label", sort=True)[response].agg(["mean", "count", "std"])
        thin = cells[cells["count"] < 2]
        if not thin.empty:
            raise DegenerateDesignError(thin["count"].astype(int).to_dict())

        anova, mse, df_resid = self._anova(frame, response, factors)
        p_values = anova.loc[factors, "p_value"]
        logger.debug("Fitted %s ~ %s: factor p-values %s", response, " + ".join(factors), p_values.to_dict())

        means = cells["mean"].to_dict()
        posthoc_run = not (cfg.posthoc_requires_significance and (p_values >= cfg.posthoc_alpha).all())
        if posthoc_run:
            posthoc = tukey_kramer(
                labels=list(cells.index),
                means=cells["mean"].tolist(),
                counts=cells["count"].tolist(),
                mse=mse,
                df_resid=df_resid,
                alpha=cfg.posthoc_alpha,
            )
            significant = posthoc.loc[posthoc["reject"], ["group_1", "group_2"]].itertuples(index=False)
            letters = compact_letters(means, [tuple(pair) for pair in significant])
        else:
            logger.info("No factor reached p < %s; post-hoc grouping skipped", cfg.posthoc_alpha)
            posthoc = pd.DataFrame(columns=POSTHOC_COLUMNS)
            letters = {label: "a" for label in means}

        levels = frame.drop_duplicates("_label").set_index("_label")[factors]
        ordered = order_groups(means)
        groups = pd.DataFrame({
            **{factor: levels.loc[ordered, factor].to_numpy() for factor in factors},
            "label": ordered,
            "mean": cells.loc[ordered, "mean"].to_numpy(),
            "n": cells.loc[ordered, "count"].astype(int).to_numpy(),
            "std": cells.loc[ordered, "std"].to_numpy(),
            "letters": [letters[label] for label in ordered],
        })

        return FactorialResult(
            response=response,
            factors=factors,
            anova=anova,
            groups=groups,
            posthoc=posthoc,
            mse=mse,
            df_resid=df_resid,
            alpha=cfg.posthoc_alpha,
            posthoc_run=posthoc_run,
        )

    @staticmethod
    def _anova(frame: pd.DataFrame, response: str, factors: List[str]):
        """Sequential (type I) ANOVA of the additive model."""
        # Internal names keep arbitrary column names out of the formula
        model_frame = pd.DataFrame({"y": frame[response].astype(float)})
        terms = []
        for i, factor in enumerate(factors):
            model_frame[f"f{i}"] = frame[factor].astype(str)
            terms.append(f"C(f{i})")

        model = ols("y ~ " + " + ".join(terms), data=model_frame).fit()
        table = sm.stats.anova_lm(model, typ=1)
        table = table.rename(
            index={f"C(f{i})": factor for i, factor in enumerate(factors)},
            columns={"PR(>F)": "p_value"},
        )[ANOVA_COLUMNS]
        return table, float(model.mse_resid), float(model.df_resid)
