"""
01_compare_methods.py
---------------------
Error-weighted clustering of the spectral-index catalogue with three methods
and silhouette-based selection of the number of groups.

Pipeline
────────
  1.  Load the catalogue: one row per star, index columns + 1σ error columns
      (error column for index ``X`` is ``e_X``)
  2.  Error-weighted dissimilarity matrix (n × n)
  3.  Partition with divisive (DIANA), Ward and PAM for k=2..4
  4.  ASW for every (k, method) → comparison table, best k per method
  5.  Silhouette records + hierarchy coefficients at the best k
  6.  Save tables and figures

Design decisions
────────────────
  - Dissimilarity is the raw sum of squared, error-normalised differences
    (ROOTED = False); the square root flattens contrast between groups.
  - PAM uses BUILD initialisation, so every run of this script is
    deterministic.

Outputs
───────
  results/tables/
    asw_comparison.tsv             k × method ASW table
    group_assignments.tsv          star × {method}_k{k} labels
    silhouette_{method}.tsv        per-star widths at best k
  results/figures/comparison/
    asw_comparison.pdf             grouped bars of ASW per k and method
    dendrogram_{method}.pdf        divisive / Ward dendrograms

Run from project root:
  python scripts/01_compare_methods.py
"""

import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import dendrogram

from lickclust import (AnalysisConfig, best_group_count, compare_methods,
                       error_weighted_dissimilarity, get_method, silhouette)
from lickclust.hierarchy import structure_coefficient

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────
CONFIG = AnalysisConfig(
    group_counts=(2, 3, 4),
    rooted=False,
    compare=("divisive", "ward", "medoid"),
)
ERROR_PREFIX = "e_"
ID_COLUMN    = "star"

CATALOGUE   = Path("data/indices.csv")
FIG_OUT     = Path("results/figures/comparison")
TABLE_OUT   = Path("results/tables")
FIG_OUT.mkdir(parents=True, exist_ok=True)
TABLE_OUT.mkdir(parents=True, exist_ok=True)
LOG_DIR     = Path("logs")
LOG_DIR.mkdir(parents=True, exist_ok=True)

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "01_compare_methods.log"),
        logging.StreamHandler(sys.stdout),
    ],
)
log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_catalogue(path: Path) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split the catalogue into (values, errors) frames with matching columns.
    Every index column ``X`` must have an ``e_X`` error column.
    """
    df = pd.read_csv(path)
    if ID_COLUMN in df.columns:
        df = df.set_index(ID_COLUMN)
    error_cols = [c for c in df.columns if c.startswith(ERROR_PREFIX)]
    index_cols = [c[len(ERROR_PREFIX):] for c in error_cols]
    missing = [c for c in index_cols if c not in df.columns]
    if missing:
        raise ValueError(f"error columns without index columns: {missing}")
    values = df[index_cols]
    errors = df[error_cols].set_axis(index_cols, axis=1)
    return values, errors


def asw_bar_chart(table: pd.DataFrame, out_path: Path) -> None:
    """Grouped bars: ASW per k, one bar per method."""
    fig, ax = plt.subplots(figsize=(6, 3.5))
    ks = table.index.tolist()
    width = 0.8 / len(table.columns)
    for i, method in enumerate(table.columns):
        x = np.arange(len(ks)) + (i - (len(table.columns) - 1) / 2) * width
        ax.bar(x, table[method].values, width=width, label=method,
               edgecolor="white", linewidth=0.5)
        for xi, v in zip(x, table[method].values):
            ax.text(xi, v + 0.005, f"{v:.2f}", ha="center", va="bottom",
                    fontsize=7)
    ax.set_xticks(range(len(ks)))
    ax.set_xticklabels([f"k={k}" for k in ks])
    ax.set_ylabel("Average silhouette width")
    ax.set_title("k-selection: ASW per clustering method")
    ax.legend(fontsize=8)
    plt.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.info(f"  Figure saved → {out_path}")


def dendrogram_plot(Z: np.ndarray, labels: list, method: str,
                    out_path: Path) -> None:
    fig, ax = plt.subplots(figsize=(max(6, len(labels) * 0.12), 4))
    dendrogram(Z, labels=labels, ax=ax, leaf_font_size=6,
               color_threshold=0)
    ax.set_ylabel("Height")
    ax.set_title(f"{method} hierarchy")
    plt.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.info(f"  Dendrogram saved → {out_path}")


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║      STEP 1: ERROR-WEIGHTED CLUSTERING COMPARISON        ║")
    log.info("╚══════════════════════════════════════════════════════════╝")
    log.info(f"Methods:      {list(CONFIG.compare)}")
    log.info(f"k evaluated:  {list(CONFIG.group_counts)}")
    log.info(f"Rooted:       {CONFIG.rooted}")

    # ── Load data ─────────────────────────────────────────────────────────────
    log.info("")
    log.info("Loading catalogue...")
    values, errors = load_catalogue(CATALOGUE)
    star_ids = values.index.astype(str).tolist()
    log.info(f"  {values.shape[0]} stars × {values.shape[1]} indexes: "
             f"{values.columns.tolist()}")

    D = error_weighted_dissimilarity(values.values, errors.values,
                                     rooted=CONFIG.rooted)
    upper = D[np.triu_indices_from(D, k=1)]
    log.info(f"  Dissimilarity: {D.shape}  "
             f"median={np.median(upper):.3f}  max={upper.max():.3f}")

    # ── ASW comparison ───────────────────────────────────────────────────────
    log.info("")
    log.info("=" * 60)
    log.info("SILHOUETTE K-SELECTION")
    log.info("=" * 60)
    table = compare_methods(D, CONFIG.group_counts, CONFIG.compare)
    best = best_group_count(table)
    for method, k in best.items():
        log.info(f"  Best k for {method:<9s} = {k}  "
                 f"(ASW={table.loc[k, method]:.4f})")

    table.to_csv(TABLE_OUT / "asw_comparison.tsv", sep="\t",
                 float_format="%.4f")
    asw_bar_chart(table, FIG_OUT / "asw_comparison.pdf")

    # ── Assignments, silhouettes, hierarchies ────────────────────────────────
    log.info("")
    log.info("=" * 60)
    log.info("ASSIGNMENTS AT BEST k")
    log.info("=" * 60)
    assignments = {}
    for name in CONFIG.compare:
        method = get_method(name)
        for k, labels in method.partition_many(D, CONFIG.group_counts).items():
            assignments[f"{method.name}_k{k}"] = labels

        k_best = int(best[method.name])
        labels = assignments[f"{method.name}_k{k_best}"]
        record = silhouette(D, labels)
        log.info(f"  {method.name} k={k_best}  sizes="
                 f"{np.bincount(labels)[1:].tolist()}  "
                 f"group mean widths={record.group_means().round(3).tolist()}")
        record.to_frame(index=star_ids).to_csv(
            TABLE_OUT / f"silhouette_{method.name}.tsv", sep="\t",
            float_format="%.4f", index_label=ID_COLUMN)

        if method.hierarchical:
            Z = method.hierarchy(D)
            log.info(f"  {method.name} structure coefficient = "
                     f"{structure_coefficient(Z):.4f}")
            dendrogram_plot(Z, star_ids, method.name,
                            FIG_OUT / f"dendrogram_{method.name}.pdf")

    assign_df = pd.DataFrame(assignments, index=star_ids)
    assign_df.index.name = ID_COLUMN
    assign_df.to_csv(TABLE_OUT / "group_assignments.tsv", sep="\t")
    log.info(f"  Assignments saved → {TABLE_OUT / 'group_assignments.tsv'}")

    # ── Summary ───────────────────────────────────────────────────────────────
    log.info("")
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║              COMPARISON COMPLETE — SUMMARY               ║")
    log.info("╠══════════════════════════════════════════════════════════╣")
    for k, row in table.iterrows():
        log.info(f"║  k={k}  " + "  ".join(f"{m}={v:.4f}" for m, v in row.items()))
    log.info("╚══════════════════════════════════════════════════════════╝")
    log.info("\n✓ Next: python scripts/02_resampling.py")
