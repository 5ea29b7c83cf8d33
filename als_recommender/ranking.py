"""
ranking.py
Turns a reconstructed rating matrix into per-user predictions and top-N lists.

Scores are put on the rating scale before ranking:

  1. shift Q_hat so its minimum is 0
  2. rescale so its maximum equals the highest observed rating in Q
  3. subtract max_rating on every already-rated cell, so rated items
     always rank below unrated ones

Ties go to the lowest item index. When a user has no strictly positive
score (e.g. a constant reconstruction, or every item already rated) the
argmax falls back to item 0 and the result is flagged ``degenerate``.
"""

from __future__ import annotations

import logging
import warnings
from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from .errors import DegenerateInputWarning, PreconditionError
from .mask import as_rating_matrix, build_mask

LOGGER = logging.getLogger(__name__)


class Recommendation(BaseModel):
    index: int
    name: Optional[str] = None
    score: float
    degenerate: bool = False


# ─────────────────────────────────────────────
# Score scaling
# ─────────────────────────────────────────────

def _as_scores(Q, Q_hat):
    q = as_rating_matrix(Q)
    q_hat = np.asarray(Q_hat, dtype=np.float64)
    if q_hat.shape != q.shape:
        raise PreconditionError(f"Q_hat{q_hat.shape} does not match Q{q.shape}")
    if not np.isfinite(q_hat).all():
        raise PreconditionError("Q_hat contains non-finite values")
    return q, q_hat


def _max_rating(q: np.ndarray) -> float:
    return float(np.max(np.nan_to_num(q, nan=0.0), initial=0.0))


def scale_scores(Q, Q_hat, suppress_observed: bool = True) -> np.ndarray:
    """Shift/rescale Q_hat onto Q's rating scale; optionally push rated cells down."""
    q, q_hat = _as_scores(Q, Q_hat)
    max_rating = _max_rating(q)

    shifted = q_hat - q_hat.min()
    top = shifted.max()
    if top > 0:
        scaled = shifted * (max_rating / top)
    else:
        warnings.warn(
            "Reconstruction is constant; all scaled scores are 0",
            DegenerateInputWarning,
            stacklevel=2,
        )
        scaled = np.zeros_like(shifted)

    if suppress_observed:
        scaled = scaled - max_rating * build_mask(q)
    return scaled


def _check_index(value: int, size: int, what: str) -> int:
    if isinstance(value, bool) or int(value) != value or not 0 <= value < size:
        raise PreconditionError(f"{what} index {value!r} out of range [0, {size})")
    return int(value)


# ─────────────────────────────────────────────
# Prediction / Top-N
# ─────────────────────────────────────────────

def predict(Q, Q_hat, user: int, item: int) -> float:
    """Rescaled score of a single (user, item) cell, without rated-item suppression."""
    scaled = scale_scores(Q, Q_hat, suppress_observed=False)
    user = _check_index(user, scaled.shape[0], "user")
    item = _check_index(item, scaled.shape[1], "item")
    return float(scaled[user, item])


def _rank_row(scores: np.ndarray):
    order = np.argsort(-scores, kind="stable")
    degenerate = not bool((scores > 0).any())
    if degenerate:
        # argmax starts from an implicit best value of 0 at index 0
        order = np.concatenate(([0], order[order != 0]))
    return order, degenerate


def top_n(
    Q,
    Q_hat,
    user: int,
    n: int,
    item_names: Optional[Sequence[str]] = None,
) -> List[Recommendation]:
    """
    The ``n`` highest-scoring items for ``user``, best first.

    ``item_names`` (one per column) fills ``Recommendation.name``.
    """
    scaled = scale_scores(Q, Q_hat)
    n_users, n_items = scaled.shape
    user = _check_index(user, n_users, "user")

    if isinstance(n, bool) or int(n) != n or not 1 <= n <= n_items:
        raise PreconditionError(f"n must be in [1, {n_items}], got {n!r}")
    if item_names is not None and len(item_names) != n_items:
        raise PreconditionError(
            f"item_names has {len(item_names)} entries, expected {n_items}"
        )

    scores = scaled[user]
    order, degenerate = _rank_row(scores)
    if degenerate:
        LOGGER.warning("User %d has no positive score; falling back to item 0", user)

    return [
        Recommendation(
            index=int(idx),
            name=str(item_names[idx]) if item_names is not None else None,
            score=float(scores[idx]),
            degenerate=degenerate,
        )
        for idx in order[: int(n)]
    ]


def best_items(Q, Q_hat) -> List[int]:
    """Top-1 item index for every user."""
    scaled = scale_scores(Q, Q_hat)
    return [int(_rank_row(row)[0][0]) for row in scaled]


# ─────────────────────────────────────────────
# Item similarity in latent space
# ─────────────────────────────────────────────

def cosine_similarity(a, b) -> float:
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        raise PreconditionError("Cannot compare vectors of different length")
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(a @ b / denom)


def similar_items(
    item_factors,
    item: int,
    n: int = 10,
    item_names: Optional[Sequence[str]] = None,
) -> List[Recommendation]:
    """
    Items closest to ``item`` by cosine similarity of their latent columns.

    ``item_factors`` is Y with shape ``(k, items)``; the item itself is
    excluded from the result.
    """
    Y = np.asarray(item_factors, dtype=np.float64)
    if Y.ndim != 2:
        raise PreconditionError(f"item_factors must be 2-D, got shape {Y.shape}")
    n_items = Y.shape[1]
    item = _check_index(item, n_items, "item")
    if isinstance(n, bool) or int(n) != n or not 1 <= n <= n_items - 1:
        raise PreconditionError(f"n must be in [1, {n_items - 1}], got {n!r}")

    norms = np.linalg.norm(Y, axis=0)
    denom = norms * norms[item]
    sims = np.divide(
        Y[:, item] @ Y, denom, out=np.zeros(n_items), where=denom > 0
    )
    sims[item] = -np.inf

    order = np.argsort(-sims, kind="stable")[: int(n)]
    return [
        Recommendation(
            index=int(idx),
            name=str(item_names[idx]) if item_names is not None else None,
            score=float(sims[idx]),
        )
        for idx in order
    ]


__all__ = [
    "Recommendation",
    "scale_scores",
    "predict",
    "top_n",
    "best_items",
    "cosine_similarity",
    "similar_items",
]
