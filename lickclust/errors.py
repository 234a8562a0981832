"""
errors.py
---------
Error kinds raised by the clustering core.

Every error is a ``ValueError`` so scripts that already guard numeric input
with ``except ValueError`` keep working. ``trial`` and ``k`` are optional
context attributes rendered into the message so a failed run is actionable
from the log alone.
"""


class ClusteringError(ValueError):
    """Base class for all errors raised by lickclust."""

    def __init__(self, message: str, *, trial: int | None = None,
                 k: int | None = None):
        self.reason = message
        self.trial = trial
        self.k = k
        super().__init__(self._render())

    def _render(self) -> str:
        ctx = []
        if self.trial is not None:
            ctx.append(f"trial={self.trial}")
        if self.k is not None:
            ctx.append(f"k={self.k}")
        if not ctx:
            return self.reason
        return f"{self.reason} ({', '.join(ctx)})"


class InvalidShape(ClusteringError):
    """Observation and uncertainty matrices do not line up."""


class InvalidUncertainty(ClusteringError):
    """An uncertainty entry is zero, negative or non-finite."""


class InvalidGroupCount(ClusteringError):
    """Requested or observed group count lies outside [2, n-1]."""


class InvalidDissimilarity(ClusteringError):
    """Distance matrix is non-finite, negative, asymmetric or not square."""


class ExcessiveTrialFailures(ClusteringError):
    """
    Too many Monte Carlo trials failed.
    The partial result is attached as ``result`` so the thin sample can
    still be inspected by the caller.
    """

    def __init__(self, message: str, result=None):
        self.result = result
        super().__init__(message)
