"""
validation.py
-------------
Silhouette widths on a precomputed dissimilarity matrix, and the
method × k comparison table built from them.

For observation i in group g

    a(i) = mean dissimilarity to the other members of g
    b(i) = min over g' != g of the mean dissimilarity to members of g'
    s(i) = (b(i) - a(i)) / max(a(i), b(i))

s(i) is 0 when i is alone in its group and when a(i) = b(i) = 0. The
average silhouette width (ASW) is the mean of s(i) over all observations
and is the single score used to compare group counts and methods.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import silhouette_samples

from lickclust.dissimilarity import check_dissimilarity
from lickclust.errors import InvalidGroupCount
from lickclust.partition import get_method

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SilhouetteRecord:
    """Per-observation silhouette widths for one group assignment."""

    widths: np.ndarray       # (n,) s(i) in [-1, 1]
    labels: np.ndarray       # (n,) assigned group
    neighbors: np.ndarray    # (n,) closest other group

    @property
    def average(self) -> float:
        return float(self.widths.mean())

    def group_means(self) -> pd.Series:
        """Mean width per group, indexed by group label."""
        return (pd.Series(self.widths, index=self.labels)
                .groupby(level=0).mean()
                .rename("mean_width"))

    def to_frame(self, index=None) -> pd.DataFrame:
        """
        One row per observation, sorted by group then decreasing width,
        which is the order a silhouette plot draws its bars in.
        """
        df = pd.DataFrame({
            "group": self.labels,
            "neighbor": self.neighbors,
            "width": self.widths,
        }, index=index)
        return df.sort_values(["group", "width"], ascending=[True, False],
                              kind="mergesort")


def _check_assignment(D: np.ndarray, labels) -> np.ndarray:
    labels = np.asarray(labels)
    n = D.shape[0]
    if labels.shape != (n,):
        raise InvalidGroupCount(
            f"assignment has shape {labels.shape}, expected ({n},)"
        )
    n_groups = len(np.unique(labels))
    if n_groups < 2 or n_groups >= n:
        raise InvalidGroupCount(
            f"silhouette needs 2..{n - 1} groups for n={n}, got {n_groups}",
            k=n_groups,
        )
    return labels


def _neighbor_groups(D: np.ndarray, labels: np.ndarray) -> np.ndarray:
    groups = np.unique(labels)
    # mean dissimilarity of every observation to every group: (n, n_groups)
    onehot = (labels[:, None] == groups[None, :]).astype(np.float64)
    mean_to = (D @ onehot) / onehot.sum(axis=0)
    mean_to[onehot.astype(bool)] = np.inf
    return groups[np.argmin(mean_to, axis=1)]


def silhouette(D, labels) -> SilhouetteRecord:
    """
    Silhouette widths of a group assignment.
    Raises InvalidGroupCount if the assignment has fewer than 2 groups or
    as many groups as observations, InvalidDissimilarity if D is malformed.
    """
    D = check_dissimilarity(D)
    labels = _check_assignment(D, labels)
    widths = silhouette_samples(D, labels, metric="precomputed")
    return SilhouetteRecord(
        widths=np.asarray(widths, dtype=np.float64),
        labels=labels,
        neighbors=_neighbor_groups(D, labels),
    )


def average_silhouette_width(D, labels) -> float:
    """Mean silhouette width (ASW) of a group assignment."""
    return silhouette(D, labels).average


# ──────────────────────────────────────────────────────────────────────────────
# Comparison across methods and group counts
# ──────────────────────────────────────────────────────────────────────────────

def compare_methods(D, group_counts=(2, 3, 4),
                    methods=("divisive", "ward", "medoid")) -> pd.DataFrame:
    """
    ASW for every (k, method) pair on the same dissimilarity matrix.
    Returns a DataFrame indexed by k with one column per method.
    """
    D = check_dissimilarity(D)
    table = {}
    for m in methods:
        method = get_method(m)
        assignments = method.partition_many(D, group_counts)
        table[method.name] = {
            k: average_silhouette_width(D, labels)
            for k, labels in assignments.items()
        }
        log.info(f"  {method.name:<9s} "
                 + "  ".join(f"k={k}: {v:.4f}" for k, v in table[method.name].items()))
    df = pd.DataFrame(table)
    df.index.name = "k"
    return df


def best_group_count(table: pd.DataFrame) -> pd.Series:
    """k with the highest ASW for each method column (ties → smaller k)."""
    return table.idxmax(axis=0).rename("best_k")
