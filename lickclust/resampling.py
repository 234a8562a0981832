"""
resampling.py
-------------
Monte Carlo sensitivity of the silhouette-based choice of k to measurement
noise.

Each trial
──────────
  1. Draw a synthetic catalogue X' with X'[i, j] ~ N(X[i, j], S[i, j]²),
     independently per star and per index (diagonal covariance).
  2. Rebuild the error-weighted dissimilarity from (X', S). S itself is not
     perturbed.
  3. Partition with the chosen method for every k in K.
  4. Record the ASW of each partition.

The deliverable is the distribution of ASW per k across trials, not a single
number: its spread shows how much the "best k" verdict depends on the noise
realisation, and its median / IQR feed the boxplot downstream.

Design decisions
────────────────
  - Malformed input (shape, σ <= 0, k outside [2, n-1]) is rejected before
    the first trial and aborts the run.
  - A trial that hits InvalidDissimilarity or a degenerate assignment is
    recorded as a TrialFailure and excluded; the run continues. If the
    failure rate exceeds ``max_failure_rate`` the run raises
    ExcessiveTrialFailures carrying the partial result.
  - One child SeedSequence per trial, spawned from a single root. A trial's
    noise depends only on (root seed, trial index), so serial and
    process-parallel runs give bit-identical results.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from lickclust.dissimilarity import check_inputs, error_weighted_dissimilarity
from lickclust.errors import (ClusteringError, ExcessiveTrialFailures,
                              InvalidDissimilarity, InvalidGroupCount)
from lickclust.partition import check_group_count, get_method
from lickclust.validation import average_silhouette_width

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialFailure:
    trial: int
    reason: str
    k: int | None = None


@dataclass
class ResamplingResult:
    """ASW samples per group count, plus the bookkeeping of failed trials."""

    method: str
    group_counts: tuple[int, ...]
    n_trials: int
    samples: dict[int, list[float]] = field(default_factory=dict)
    trials: list[int] = field(default_factory=list)   # successful trial indices
    failures: list[TrialFailure] = field(default_factory=list)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    @property
    def n_succeeded(self) -> int:
        return len(self.trials)

    @property
    def failure_rate(self) -> float:
        return self.n_failed / self.n_trials if self.n_trials else 0.0

    def to_frame(self) -> pd.DataFrame:
        """Wide frame: one row per successful trial, one column per k."""
        df = pd.DataFrame(self.samples, index=pd.Index(self.trials, name="trial"))
        df.columns.name = "k"
        return df

    def to_long(self) -> pd.DataFrame:
        """Long frame (trial, k, asw) for seaborn/matplotlib boxplots."""
        return (self.to_frame().stack().rename("asw").reset_index()
                .astype({"k": int}))

    def _successful_frame(self) -> pd.DataFrame:
        if not self.n_succeeded:
            raise ClusteringError(
                f"no successful trials to summarise "
                f"({self.n_failed}/{self.n_trials} failed)"
            )
        return self.to_frame()

    def summary(self) -> pd.DataFrame:
        """Median, quartiles, IQR, mean and SD of ASW per k."""
        df = self._successful_frame()
        q1, med, q3 = (df.quantile(q) for q in (0.25, 0.5, 0.75))
        out = pd.DataFrame({
            "n": df.count(),
            "median": med,
            "q1": q1,
            "q3": q3,
            "iqr": q3 - q1,
            "mean": df.mean(),
            "sd": df.std(ddof=1),
        })
        out.index.name = "k"
        return out

    def best_k(self) -> int:
        """k with the highest median ASW (ties → smaller k)."""
        return int(self._successful_frame().median().idxmax())

    def preferred_counts(self) -> pd.Series:
        """Share of successful trials in which each k had the highest ASW."""
        df = self._successful_frame()
        winners = df.idxmax(axis=1).value_counts(normalize=True)
        return winners.reindex(df.columns, fill_value=0.0).rename("share")


# ──────────────────────────────────────────────────────────────────────────────
# One trial
# ──────────────────────────────────────────────────────────────────────────────

def perturb(values: np.ndarray, errors: np.ndarray,
            rng: np.random.Generator) -> np.ndarray:
    """One synthetic catalogue: every entry redrawn from N(X, S²)."""
    return rng.normal(loc=values, scale=errors)


def run_trial(values: np.ndarray, errors: np.ndarray, method,
              group_counts, rng: np.random.Generator,
              rooted: bool = False, trial: int | None = None) -> dict[int, float]:
    """
    Perturb → dissimilarity → partition → ASW for one trial.
    Returns {k: ASW}. Raises InvalidDissimilarity / InvalidGroupCount tagged
    with the trial index (and k where one applies).
    """
    method = get_method(method)
    synthetic = perturb(values, errors, rng)
    try:
        D = error_weighted_dissimilarity(synthetic, errors, rooted=rooted)
    except InvalidDissimilarity as exc:
        raise InvalidDissimilarity(exc.reason, trial=trial) from exc

    try:
        assignments = method.partition_many(D, group_counts)
    except (InvalidDissimilarity, InvalidGroupCount) as exc:
        raise type(exc)(exc.reason, trial=trial, k=exc.k) from exc

    scores = {}
    for k, labels in assignments.items():
        try:
            scores[k] = average_silhouette_width(D, labels)
        except (InvalidDissimilarity, InvalidGroupCount) as exc:
            raise type(exc)(exc.reason, trial=trial, k=k) from exc
    return scores


def _trial_task(args) -> tuple[int, dict[int, float] | None, TrialFailure | None]:
    trial, values, errors, method, group_counts, seed, rooted = args
    rng = np.random.default_rng(seed)
    try:
        scores = run_trial(values, errors, method, group_counts, rng,
                           rooted=rooted, trial=trial)
    except (InvalidDissimilarity, InvalidGroupCount) as exc:
        return trial, None, TrialFailure(trial=trial, reason=exc.reason, k=exc.k)
    return trial, scores, None


def _trial_seeds(random_state, n_trials: int) -> list[np.random.SeedSequence]:
    if isinstance(random_state, np.random.Generator):
        # derive a root from the caller's generator, advancing it once
        root = np.random.SeedSequence(
            random_state.integers(0, 2**32, size=4).tolist()
        )
    elif isinstance(random_state, np.random.SeedSequence):
        root = random_state
    else:
        root = np.random.SeedSequence(random_state)
    return root.spawn(n_trials)


# ──────────────────────────────────────────────────────────────────────────────
# Driver
# ──────────────────────────────────────────────────────────────────────────────

def run_resampling(values, errors, method="divisive", n_trials: int = 50,
                   group_counts=(2, 3, 4), rooted: bool = False,
                   random_state=None, max_failure_rate: float = 0.1,
                   n_jobs: int = 1) -> ResamplingResult:
    """
    Repeat the full dissimilarity → clustering → silhouette pipeline over
    ``n_trials`` noise-perturbed copies of the catalogue.

    random_state : None, int, SeedSequence or Generator. Fix it for
                   reproducible samples.
    n_jobs       : >1 distributes trials over a process pool.
    """
    X, S = check_inputs(values, errors)
    n = X.shape[0]
    ks = tuple(sorted({check_group_count(k, n) for k in group_counts}))
    if not ks:
        raise InvalidGroupCount("no candidate group counts given")
    if n_trials < 1:
        raise ValueError(f"n_trials must be >= 1, got {n_trials}")
    method = get_method(method)

    log.info(f"Resampling: method={method.name}  trials={n_trials}  "
             f"k={list(ks)}  rooted={rooted}  n={n}  p={X.shape[1]}  "
             f"n_jobs={n_jobs}")

    seeds = _trial_seeds(random_state, n_trials)
    tasks = [(t, X, S, method, ks, seeds[t], rooted) for t in range(n_trials)]
    if n_jobs > 1:
        with ProcessPoolExecutor(max_workers=n_jobs) as pool:
            outcomes = list(pool.map(_trial_task, tasks))
    else:
        outcomes = [_trial_task(task) for task in tasks]

    result = ResamplingResult(method=method.name, group_counts=ks,
                              n_trials=n_trials,
                              samples={k: [] for k in ks})
    for trial, scores, failure in sorted(outcomes, key=lambda o: o[0]):
        if failure is not None:
            log.warning(f"  Trial {trial} failed: {failure.reason}"
                        + (f" (k={failure.k})" if failure.k is not None else ""))
            result.failures.append(failure)
            continue
        result.trials.append(trial)
        for k in ks:
            result.samples[k].append(scores[k])

    log.info(f"  Trials: {result.n_succeeded} succeeded, {result.n_failed} failed")
    if result.n_succeeded:
        for k, row in result.summary().iterrows():
            log.info(f"  k={k}  median ASW={row['median']:.4f}  "
                     f"IQR=[{row['q1']:.4f}, {row['q3']:.4f}]")

    if result.failure_rate > max_failure_rate:
        raise ExcessiveTrialFailures(
            f"{result.n_failed}/{n_trials} trials failed "
            f"(rate {result.failure_rate:.2f} > {max_failure_rate:.2f})",
            result=result,
        )
    return result
