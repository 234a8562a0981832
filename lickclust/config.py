"""
config.py
---------
Run parameters for the method comparison and the resampling analysis.
Nothing here is read implicitly: scripts build an AnalysisConfig and pass
its fields to the core functions.
"""

from dataclasses import asdict, dataclass

from lickclust.partition import METHODS, get_method


@dataclass(frozen=True)
class AnalysisConfig:
    n_trials: int = 50                        # Monte Carlo trials R
    group_counts: tuple[int, ...] = (2, 3, 4) # candidate k
    rooted: bool = False                      # sqrt of the error-weighted sum
    method: str = "divisive"                  # resampling method
    compare: tuple[str, ...] = tuple(METHODS) # methods in the comparison table
    max_failure_rate: float = 0.1
    random_state: int | None = None
    n_jobs: int = 1

    def __post_init__(self):
        get_method(self.method)
        for m in self.compare:
            get_method(m)
        if self.n_trials < 1:
            raise ValueError(f"n_trials must be >= 1, got {self.n_trials}")
        if not 0.0 <= self.max_failure_rate <= 1.0:
            raise ValueError(
                f"max_failure_rate must lie in [0, 1], got {self.max_failure_rate}"
            )

    def resampling_kwargs(self) -> dict:
        """Keyword arguments for lickclust.resampling.run_resampling."""
        d = asdict(self)
        d.pop("compare")
        return d
