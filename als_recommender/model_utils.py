"""
model_utils.py
File-level helpers around the ALS core.

This module handles:
  • Loading long-format ratings (parquet / csv) into a dense rating matrix
  • Training ALS from a ratings file and saving a joblib artifact
  • Loading the artifact back and serving top-N lists by external ids

The numerical core never touches the filesystem; everything here is glue.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import joblib
import numpy as np
import pandas as pd

from config.settings import settings
from .als import AlternatingLeastSquares
from .ranking import Recommendation, top_n

LOGGER = logging.getLogger(__name__)

# ─────────────────────────────────────────────
# PATHS
# ─────────────────────────────────────────────

DATA_DIR = Path(settings.DATA_DIR)
ARTIFACT_DIR = Path(settings.ARTIFACT_DIR)

# ─────────────────────────────────────────────
# CUSTOM EXCEPTIONS
# ─────────────────────────────────────────────

class MissingDataError(RuntimeError):
    """Raised when the ratings file is missing, empty, or lacks required columns."""
    pass

class MissingArtifactError(RuntimeError):
    """Raised when the ALS artifact is missing."""
    pass


def _resolve_path(path):
    return Path(path).expanduser().resolve()


def ensure_directory(path):
    p = _resolve_path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


# ─────────────────────────────────────────────
# RATINGS
# ─────────────────────────────────────────────

def load_ratings(
    path: Path | str = DATA_DIR / "ratings.parquet",
    *,
    user_col: str = "user_id",
    item_col: str = "item_id",
    rating_col: str = "rating",
) -> Tuple[np.ndarray, List[Any], List[Any]]:
    """
    Read long-format ratings and pivot them into a dense ``users x items`` matrix.

    Unrated cells are NaN. Duplicate (user, item) pairs keep the last rating.
    Returns ``(Q, user_ids, item_ids)`` where row ``u`` of Q belongs to
    ``user_ids[u]`` and column ``i`` to ``item_ids[i]``.
    """
    path = _resolve_path(path)
    if not path.exists():
        raise MissingDataError(f"Ratings file not found: {path}")

    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
    elif path.suffix == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError("Ratings must be parquet or csv")

    missing = [c for c in (user_col, item_col, rating_col) if c not in df.columns]
    if missing:
        raise MissingDataError(f"Ratings file {path} lacks columns: {missing}")
    if df.empty:
        raise MissingDataError(f"Ratings are empty: {path}")

    # map ids
    u_codes = {u: i for i, u in enumerate(df[user_col].unique())}
    i_codes = {t: i for i, t in enumerate(df[item_col].unique())}

    rows = df[user_col].map(u_codes).to_numpy()
    cols = df[item_col].map(i_codes).to_numpy()

    Q = np.full((len(u_codes), len(i_codes)), np.nan)
    Q[rows, cols] = pd.to_numeric(df[rating_col], errors="coerce").to_numpy(dtype=np.float64)

    LOGGER.info("Loaded %d ratings → %dx%d matrix from %s", len(df), *Q.shape, path)
    return Q, list(u_codes), list(i_codes)


# ─────────────────────────────────────────────
# ALS ARTIFACT
# ─────────────────────────────────────────────

def build_cf_model(
    ratings_path: Path | str = DATA_DIR / "ratings.parquet",
    artifact_path: Path | str = ARTIFACT_DIR / "als.joblib",
    *,
    factors=settings.ALS_FACTORS,
    regularization=settings.ALS_REGULARIZATION,
    iterations=settings.ALS_ITERATIONS,
    random_state=settings.ALS_RANDOM_STATE,
    weighted=settings.ALS_WEIGHTED,
    user_col: str = "user_id",
    item_col: str = "item_id",
    rating_col: str = "rating",
):
    Q, user_ids, item_ids = load_ratings(
        ratings_path, user_col=user_col, item_col=item_col, rating_col=rating_col
    )

    model = AlternatingLeastSquares(
        factors=factors,
        regularization=regularization,
        iterations=iterations,
        random_state=random_state,
        weighted=weighted,
    )
    model.fit(Q)

    artifact = _resolve_path(artifact_path)
    ensure_directory(artifact.parent)
    joblib.dump(
        {
            "user_factors": model.user_factors,
            "item_factors": model.item_factors,
            "ratings": Q,
            "u_codes": {u: i for i, u in enumerate(user_ids)},
            "i_codes": {t: i for i, t in enumerate(item_ids)},
            "training_error": model.training_error,
            "params": {
                "factors": factors,
                "regularization": regularization,
                "iterations": iterations,
                "random_state": random_state,
                "weighted": weighted,
            },
        },
        artifact,
    )

    LOGGER.info("ALS model saved → %s", artifact)
    return artifact


def load_cf_artifact(path=ARTIFACT_DIR / "als.joblib") -> Dict[str, Any]:
    path = _resolve_path(path)
    if not path.exists():
        raise MissingArtifactError(f"ALS artifact not found: {path}")
    return joblib.load(path)


def recommend_from_artifact(
    artifact: Dict[str, Any],
    user_id,
    n: int = settings.TOP_N,
) -> Optional[List[Recommendation]]:
    """Top-N for an external ``user_id``; ``None`` when the user is unknown."""
    uidx = artifact["u_codes"].get(user_id)
    if uidx is None:
        LOGGER.warning("Unknown user id: %s", user_id)
        return None

    item_ids = [None] * len(artifact["i_codes"])
    for tid, idx in artifact["i_codes"].items():
        item_ids[idx] = str(tid)

    q_hat = artifact["user_factors"] @ artifact["item_factors"]
    return top_n(artifact["ratings"], q_hat, uidx, n, item_names=item_ids)


__all__ = [
    "MissingDataError",
    "MissingArtifactError",
    "ensure_directory",
    "load_ratings",
    "build_cf_model",
    "load_cf_artifact",
    "recommend_from_artifact",
    "DATA_DIR",
    "ARTIFACT_DIR",
]
