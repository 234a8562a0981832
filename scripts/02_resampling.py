"""
02_resampling.py
----------------
Monte Carlo stability of the silhouette choice of k under measurement noise.

Every trial redraws each index value from N(value, σ²), rebuilds the
error-weighted dissimilarity, re-clusters with one method for k=2..4 and
records the ASW per k. The ASW distributions across trials show whether the
best k from Step 1 survives the noise.

Design decisions
────────────────
  - One method per run (METHOD, divisive by default). Re-run with METHOD
    changed for the others.
  - Seeded: the root seed spawns one independent stream per trial, so the
    samples are identical whether trials run serially or on N_JOBS workers.
  - Failed trials (non-finite distances, degenerate partitions) are logged
    and excluded; more than MAX_FAILURE_RATE of them aborts the run.

Outputs
───────
  results/tables/
    resampling_asw_{method}.tsv        trial × k ASW samples
    resampling_summary_{method}.tsv    median / quartiles / IQR per k
  results/figures/resampling/
    asw_boxplot_{method}.pdf           ASW distribution per k

Run from project root:
  python scripts/02_resampling.py
"""

import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from lickclust import AnalysisConfig, ExcessiveTrialFailures, run_resampling

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────
METHOD           = "divisive"
N_TRIALS         = 50
GROUP_COUNTS     = (2, 3, 4)
SEED             = 42
N_JOBS           = 4
MAX_FAILURE_RATE = 0.1

CONFIG = AnalysisConfig(
    n_trials=N_TRIALS,
    group_counts=GROUP_COUNTS,
    rooted=False,
    method=METHOD,
    max_failure_rate=MAX_FAILURE_RATE,
    random_state=SEED,
    n_jobs=N_JOBS,
)
ERROR_PREFIX = "e_"
ID_COLUMN    = "star"

CATALOGUE   = Path("data/indices.csv")
FIG_OUT     = Path("results/figures/resampling")
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
        logging.FileHandler(LOG_DIR / "02_resampling.log"),
        logging.StreamHandler(sys.stdout),
    ],
)
log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_catalogue(path: Path) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Same layout as Step 1: index columns X with error columns e_X."""
    df = pd.read_csv(path)
    if ID_COLUMN in df.columns:
        df = df.set_index(ID_COLUMN)
    error_cols = [c for c in df.columns if c.startswith(ERROR_PREFIX)]
    index_cols = [c[len(ERROR_PREFIX):] for c in error_cols]
    missing = [c for c in index_cols if c not in df.columns]
    if missing:
        raise ValueError(f"error columns without index columns: {missing}")
    return df[index_cols], df[error_cols].set_axis(index_cols, axis=1)


def asw_boxplot(samples: pd.DataFrame, method: str, out_path: Path) -> None:
    """ASW distribution per k across successful trials."""
    fig, ax = plt.subplots(figsize=(5, 3.5))
    ks = samples.columns.tolist()
    ax.boxplot([samples[k].values for k in ks], widths=0.5, patch_artist=True,
               boxprops={"facecolor": "steelblue", "alpha": 0.6},
               medianprops={"color": "black"})
    ax.set_xticks(range(1, len(ks) + 1))
    ax.set_xticklabels([str(k) for k in ks])
    ax.set_xlabel("Number of groups (k)")
    ax.set_ylabel("Average silhouette width")
    ax.set_title(f"ASW under measurement-error resampling\n"
                 f"({method}, {len(samples)} trials)")
    plt.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.info(f"  Figure → {out_path}")


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║         STEP 2: MONTE CARLO RESAMPLING OF ASW            ║")
    log.info("╚══════════════════════════════════════════════════════════╝")
    log.info(f"Config: {CONFIG}")

    values, errors = load_catalogue(CATALOGUE)
    log.info(f"  {values.shape[0]} stars × {values.shape[1]} indexes")

    try:
        result = run_resampling(values.values, errors.values,
                                **CONFIG.resampling_kwargs())
    except ExcessiveTrialFailures as exc:
        log.error(f"  ✗ {exc}")
        for failure in exc.result.failures:
            log.error(f"    trial {failure.trial}: {failure.reason}")
        sys.exit(1)

    method = result.method
    samples = result.to_frame()
    summary = result.summary()
    samples.to_csv(TABLE_OUT / f"resampling_asw_{method}.tsv", sep="\t",
                   float_format="%.4f")
    summary.to_csv(TABLE_OUT / f"resampling_summary_{method}.tsv", sep="\t",
                   float_format="%.4f")
    log.info(f"  Tables saved → {TABLE_OUT}")
    asw_boxplot(samples, method, FIG_OUT / f"asw_boxplot_{method}.pdf")

    # ── Summary ───────────────────────────────────────────────────────────────
    share = result.preferred_counts()
    best = result.best_k()
    log.info("")
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║             RESAMPLING COMPLETE — SUMMARY                ║")
    log.info("╠══════════════════════════════════════════════════════════╣")
    log.info(f"║  Method: {method}   trials: {result.n_succeeded}/{result.n_trials}"
             f"   failed: {result.n_failed}")
    for k, row in summary.iterrows():
        log.info(f"║  k={k}  median={row['median']:.4f}  IQR={row['iqr']:.4f}  "
                 f"best in {share[k]:.0%} of trials"
                 + ("  ← best median" if k == best else ""))
    log.info("╚══════════════════════════════════════════════════════════╝")
