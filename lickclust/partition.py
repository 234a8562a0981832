"""
partition.py
------------
Clustering adapters over a precomputed dissimilarity matrix.

Every method answers the same question, partition(D, k) → labels 1..k, so
the comparison table and the resampling driver can treat them uniformly.

  divisive      DIANA hierarchy, cut at k        (deterministic)
  ward          Ward agglomerative hierarchy, cut at k  (deterministic)
  medoid        PAM, BUILD initialisation + SWAP (deterministic)

The two hierarchical methods build one tree per matrix and cut it for every
requested k. PAM has no shared tree and is re-run per k.
"""

import logging
from abc import ABC, abstractmethod

import kmedoids
import numpy as np

from lickclust.dissimilarity import check_dissimilarity
from lickclust.errors import InvalidGroupCount
from lickclust.hierarchy import cut, divisive_linkage, relabel, ward_linkage

log = logging.getLogger(__name__)


def check_group_count(k: int, n: int) -> int:
    """Raise InvalidGroupCount unless 2 <= k <= n-1."""
    if isinstance(k, bool) or int(k) != k:
        raise InvalidGroupCount(f"group count must be an integer, got {k!r}")
    k = int(k)
    if k < 2 or k > n - 1:
        raise InvalidGroupCount(
            f"group count must lie in [2, {n - 1}] for n={n}", k=k
        )
    return k


class PartitionMethod(ABC):
    """Partition n objects given their n×n dissimilarity matrix."""

    name: str = ""
    hierarchical: bool = False

    @abstractmethod
    def partition(self, D: np.ndarray, k: int) -> np.ndarray:
        """Return an (n,) integer array of group labels in 1..k."""

    def partition_many(self, D: np.ndarray, ks) -> dict[int, np.ndarray]:
        """Labels for every k in ks, keyed by k."""
        return {int(k): self.partition(D, k) for k in ks}

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HierarchicalPartition(PartitionMethod):
    """Shared cut-by-k logic for the two tree-building methods."""

    hierarchical = True

    @abstractmethod
    def build(self, D: np.ndarray) -> np.ndarray:
        """Linkage matrix of the full hierarchy."""

    def hierarchy(self, D) -> np.ndarray:
        D = check_dissimilarity(D)
        return self.build(D)

    def partition(self, D: np.ndarray, k: int) -> np.ndarray:
        D = check_dissimilarity(D)
        k = check_group_count(k, D.shape[0])
        return cut(self.build(D), k)

    def partition_many(self, D: np.ndarray, ks) -> dict[int, np.ndarray]:
        D = check_dissimilarity(D)
        ks = [check_group_count(k, D.shape[0]) for k in ks]
        Z = self.build(D)
        return {k: cut(Z, k) for k in ks}


class DivisivePartition(HierarchicalPartition):
    name = "divisive"

    def build(self, D: np.ndarray) -> np.ndarray:
        return divisive_linkage(D)


class WardPartition(HierarchicalPartition):
    name = "ward"

    def build(self, D: np.ndarray) -> np.ndarray:
        return ward_linkage(D)


class MedoidPartition(PartitionMethod):
    """
    Partitioning Around Medoids.
    BUILD picks the initial medoids greedily (first the object with the
    smallest total dissimilarity, then whichever object lowers the total
    cost most), so no random state is involved; SWAP then exchanges medoids
    and non-medoids while the total cost decreases.
    """

    name = "medoid"

    def __init__(self, max_iter: int = 100):
        self.max_iter = max_iter

    def fit(self, D: np.ndarray, k: int):
        """Run PAM and return the kmedoids result (labels, medoids, loss)."""
        D = check_dissimilarity(D)
        k = check_group_count(k, D.shape[0])
        result = kmedoids.pam(D, k, max_iter=self.max_iter, init="build")
        log.debug(f"PAM k={k}: loss={result.loss:.4f}  swaps={result.n_swap}")
        return result

    def partition(self, D: np.ndarray, k: int) -> np.ndarray:
        result = self.fit(D, k)
        labels = np.array(result.labels, dtype=int)
        # medoids at distance 0 from each other (duplicate rows) may share a
        # label; every medoid keeps its own group
        labels[np.asarray(result.medoids)] = np.arange(len(result.medoids))
        return relabel(labels)

    def __repr__(self) -> str:
        return f"MedoidPartition(max_iter={self.max_iter})"


METHODS = {
    "divisive": DivisivePartition,
    "ward": WardPartition,
    "medoid": MedoidPartition,
}
# alternative names accepted by get_method
ALIASES = {"agglomerative": "ward", "diana": "divisive", "pam": "medoid"}


def get_method(method) -> PartitionMethod:
    """Resolve a method name (or pass through an instance)."""
    if isinstance(method, PartitionMethod):
        return method
    key = ALIASES.get(str(method).lower(), str(method).lower())
    if key not in METHODS:
        raise ValueError(f"Unknown clustering method: {method!r} "
                         f"(expected one of {sorted(METHODS)})")
    return METHODS[key]()
