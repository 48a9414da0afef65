"""Error taxonomy for mortix.

Every analysis error derives from both :class:`MortixError` and
:class:`ValueError`, so callers may catch either the library-specific base or
the generic input-validation error.
"""


class MortixError(Exception):
    """Base class for all mortix analysis errors."""


class InvalidBucketError(MortixError, ValueError):
    """A time-bucket value is neither the sentinel nor a numeric time."""

    def __init__(self, value, reason: str = ""):
        self.value = value
        message = f"Invalid time bucket {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class IncompleteSeriesError(MortixError, ValueError):
    """A (group, replicate) series lacks its end-of-observation bucket."""

    def __init__(self, group, replicate, sentinel):
        self.group = group
        self.replicate = replicate
        self.sentinel = sentinel
        super().__init__(
            f"Series (group={group!r}, replicate={replicate!r}) has no "
            f"{sentinel!r} bucket; cannot determine the series denominator"
        )


class InsufficientGroupsError(MortixError, ValueError):
    """Fewer than two groups remain for a comparison."""

    def __init__(self, groups):
        self.groups = list(groups)
        super().__init__(
            f"At least 2 groups are required, found {len(self.groups)}: {self.groups}"
        )


class DegenerateDesignError(MortixError, ValueError):
    """A factor-level combination has too few observations for post-hoc variance."""

    def __init__(self, cells):
        self.cells = dict(cells)
        detail = ", ".join(f"{label!r} (n={n})" for label, n in self.cells.items())
        super().__init__(
            f"Factor combinations need at least 2 observations each; got {detail}"
        )
