"""
hierarchy.py
------------
Hierarchies over a precomputed dissimilarity matrix, in scipy linkage format.

Both hierarchies are returned as an (n-1) × 4 linkage matrix Z
(``[id_a, id_b, height, size]`` per merge, merges ordered by non-decreasing
height), so the same cut, dendrogram and coefficient helpers serve both.

Divisive (DIANA, Kaufman & Rousseeuw 1990)
──────────────────────────────────────────
  1. Start from one cluster holding every object.
  2. Pick the cluster with the largest diameter (max within-cluster
     dissimilarity). Ties go to the cluster holding the lowest object index.
  3. Seed a splinter group with the object of largest mean dissimilarity
     to the rest of its cluster.
  4. Repeatedly move the remaining object whose (mean dissimilarity to the
     remainder) − (mean dissimilarity to the splinter group) is largest,
     while that difference is strictly positive.
  5. Record the split at height = parent diameter; repeat until every
     cluster is a singleton.
  Children never have a larger diameter than their parent, so split heights
  are non-increasing; reversing them gives a monotone linkage matrix.

Agglomerative (Ward)
────────────────────
  scipy's Lance-Williams Ward update on the condensed dissimilarity. At each
  step the pair merged is the one with the smallest increase in within-
  cluster sum of squared dissimilarities.
"""

import logging

import numpy as np
from scipy.cluster.hierarchy import cut_tree, dendrogram, linkage
from scipy.spatial.distance import squareform

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Divisive
# ──────────────────────────────────────────────────────────────────────────────

def _splinter(D: np.ndarray, members: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Split one cluster into (splinter group, remainder)."""
    sub = D[np.ix_(members, members)]
    m = len(members)
    if m == 2:
        return members[:1], members[1:]

    mean_to_others = sub.sum(axis=1) / (m - 1)
    splinter = [int(np.argmax(mean_to_others))]
    rest = [i for i in range(m) if i != splinter[0]]

    while len(rest) > 1:
        to_rest     = sub[np.ix_(rest, rest)].sum(axis=1) / (len(rest) - 1)
        to_splinter = sub[np.ix_(rest, splinter)].mean(axis=1)
        gain = to_rest - to_splinter
        best = int(np.argmax(gain))
        if gain[best] <= 0:
            break
        splinter.append(rest.pop(best))

    return np.sort(members[splinter]), np.sort(members[rest])


def _diameter(D: np.ndarray, members: np.ndarray) -> float:
    if len(members) < 2:
        return 0.0
    return float(D[np.ix_(members, members)].max())


def divisive_linkage(D: np.ndarray) -> np.ndarray:
    """
    DIANA hierarchy of a square dissimilarity matrix.
    Returns a scipy linkage matrix (n-1) × 4 ordered by non-decreasing height.
    """
    n = D.shape[0]
    open_clusters = [np.arange(n)]
    splits = []                      # (height, left, right) in split order

    while open_clusters:
        diam = [_diameter(D, c) for c in open_clusters]
        pick = max(range(len(open_clusters)),
                   key=lambda i: (diam[i], -open_clusters[i][0]))
        parent = open_clusters.pop(pick)
        left, right = _splinter(D, parent)
        splits.append((diam[pick], left, right))
        open_clusters.extend(c for c in (left, right) if len(c) > 1)

    # Undo the splits bottom-up: the last split becomes the first merge.
    node_id = {(i,): i for i in range(n)}
    Z = np.zeros((n - 1, 4), dtype=np.float64)
    for row, (height, left, right) in enumerate(reversed(splits)):
        a, b = node_id[tuple(left)], node_id[tuple(right)]
        Z[row] = [min(a, b), max(a, b), height, len(left) + len(right)]
        node_id[tuple(np.sort(np.concatenate([left, right])))] = n + row
    log.debug(f"DIANA: {n} objects, root height {Z[-1, 2]:.4g}")
    return Z


# ──────────────────────────────────────────────────────────────────────────────
# Agglomerative
# ──────────────────────────────────────────────────────────────────────────────

def ward_linkage(D: np.ndarray) -> np.ndarray:
    """Ward hierarchy of a square dissimilarity matrix (scipy linkage format)."""
    condensed = squareform(D, checks=False)
    return linkage(condensed, method="ward")


# ──────────────────────────────────────────────────────────────────────────────
# Shared helpers
# ──────────────────────────────────────────────────────────────────────────────

def cut(Z: np.ndarray, k: int) -> np.ndarray:
    """
    Cut a hierarchy into exactly k groups by undoing its k-1 highest merges.
    Returns labels 1..k numbered by first appearance.
    """
    raw = cut_tree(Z, n_clusters=k).ravel()
    return relabel(raw)


def relabel(labels) -> np.ndarray:
    """Renumber arbitrary labels to 1..k in order of first appearance."""
    labels = np.asarray(labels)
    _, first = np.unique(labels, return_index=True)
    order = labels[np.sort(first)]
    mapping = {lab: i + 1 for i, lab in enumerate(order)}
    return np.array([mapping[lab] for lab in labels], dtype=int)


def structure_coefficient(Z: np.ndarray) -> float:
    """
    Agglomerative / divisive coefficient of a hierarchy.
    For every object take the height h(i) of the first merge it takes part
    in, divided by the height of the final merge; the coefficient is the
    mean of 1 - h(i)/h_max. Values near 1 indicate strong clustering.
    """
    n = Z.shape[0] + 1
    h_max = Z[-1, 2]
    if h_max <= 0:
        return 0.0
    first_merge = np.full(n, np.nan)
    for a, b, height, _ in Z:
        for node in (int(a), int(b)):
            if node < n:
                first_merge[node] = height
    return float(np.mean(1.0 - first_merge / h_max))


def dendrogram_data(Z: np.ndarray, labels=None) -> dict:
    """Leaf order and segment coordinates for an external dendrogram plot."""
    return dendrogram(Z, labels=labels, no_plot=True)
