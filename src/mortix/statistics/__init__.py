"""Statistics module for mortix.

Factorial ANOVA with Tukey-Kramer post-hoc grouping and compact letter
display, decoupled from the survival half of the package.
"""

from mortix.statistics.factorial import FactorialGroupingEngine, FactorialResult
from mortix.statistics.letters import compact_letters, share_letter
from mortix.statistics.tukey import tukey_kramer

__all__ = [
    "FactorialGroupingEngine",
    "FactorialResult",
    "compact_letters",
    "share_letter",
    "tukey_kramer",
]
