"""
dissimilarity.py
----------------
Error-weighted dissimilarity between stars measured on the same set of
spectral indexes.

For rows a, b of the observation matrix X with uncertainties S

    D[a, b] = sum_j (X[a, j] - X[b, j])^2 / (S[a, j]^2 + S[b, j]^2)

i.e. the squared separation of every index expressed in units of the
combined measurement error. The raw sum is returned by default (sharper
contrast between sub-structures); ``rooted=True`` returns its square root,
which is a proper metric.

Design decisions
────────────────
  - Computed by broadcasting (n × n × p) rather than looping over pairs.
    n is tens to low hundreds, so memory is not a concern.
  - Numerator and denominator are both symmetric under a <-> b, so the
    result is exactly symmetric and the diagonal is exactly 0 without any
    post-hoc symmetrisation.
  - Uncertainties must be strictly positive; a zero σ would divide by zero
    and is rejected up front as malformed input.
"""

import logging

import numpy as np

from lickclust.errors import InvalidDissimilarity, InvalidShape, InvalidUncertainty

log = logging.getLogger(__name__)


def check_inputs(values, errors) -> tuple[np.ndarray, np.ndarray]:
    """
    Coerce X and S to float arrays and validate them.
    Raises InvalidShape when the two matrices are not 2-D with identical
    shape, InvalidUncertainty when any σ is non-positive or non-finite.
    """
    X = np.asarray(values, dtype=np.float64)
    S = np.asarray(errors, dtype=np.float64)
    if X.ndim != 2 or S.ndim != 2:
        raise InvalidShape(
            f"expected 2-D matrices, got X.ndim={X.ndim} S.ndim={S.ndim}"
        )
    if X.shape != S.shape:
        raise InvalidShape(f"X shape {X.shape} != S shape {S.shape}")
    if X.shape[0] < 2:
        raise InvalidShape(f"need at least 2 observations, got {X.shape[0]}")

    bad = ~np.isfinite(S) | (S <= 0)
    if bad.any():
        rows, cols = np.nonzero(bad)
        raise InvalidUncertainty(
            f"{int(bad.sum())} non-positive uncertainties, "
            f"first at row={rows[0]} col={cols[0]} (value={S[rows[0], cols[0]]!r})"
        )
    return X, S


def check_dissimilarity(D, *, trial: int | None = None,
                        k: int | None = None) -> np.ndarray:
    """Validate a precomputed n×n dissimilarity matrix; return it as float64."""
    D = np.asarray(D, dtype=np.float64)
    if D.ndim != 2 or D.shape[0] != D.shape[1]:
        raise InvalidDissimilarity(f"dissimilarity must be square, got {D.shape}",
                                   trial=trial, k=k)
    if not np.isfinite(D).all():
        n_bad = int((~np.isfinite(D)).sum())
        raise InvalidDissimilarity(f"{n_bad} non-finite dissimilarities",
                                   trial=trial, k=k)
    if (D < 0).any():
        raise InvalidDissimilarity(f"negative dissimilarity (min={D.min():.4g})",
                                   trial=trial, k=k)
    if not np.array_equal(D, D.T):
        raise InvalidDissimilarity("dissimilarity matrix is not symmetric",
                                   trial=trial, k=k)
    if np.any(np.diag(D) != 0):
        raise InvalidDissimilarity("dissimilarity diagonal is not zero",
                                   trial=trial, k=k)
    return D


def error_weighted_dissimilarity(values, errors,
                                 rooted: bool = False) -> np.ndarray:
    """
    Pairwise error-weighted dissimilarity.
    values : (n_stars, n_indexes) measured index values X
    errors : (n_stars, n_indexes) 1σ uncertainties S, strictly positive
    Returns  (n_stars, n_stars) symmetric matrix with zero diagonal.
    """
    X, S = check_inputs(values, errors)

    # σ² can still underflow to 0; the resulting inf/nan is caught below
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        diff2 = (X[:, None, :] - X[None, :, :]) ** 2
        var   = S[:, None, :] ** 2 + S[None, :, :] ** 2
        D     = (diff2 / var).sum(axis=2)
    if rooted:
        D = np.sqrt(D)

    return check_dissimilarity(D)
