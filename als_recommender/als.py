"""
als.py
Alternating Least Squares for an explicit, partially observed rating matrix.

The model factorizes a dense ``users x items`` matrix Q into user factors
X ``(users, k)`` and item factors Y ``(k, items)`` by alternately solving
the ridge-regularized normal equations for one side while the other is
held fixed:

  • X-step:  (Y Yᵀ + λI) Xᵀ = Y Qᵀ
  • Y-step:  (Xᵀ X + λI) Y  = Xᵀ Q

Two variants are available:

  • weighted=True:  every user row / item column gets its own system built
                     only from its observed cells (true weighted ALS).
  • weighted=False: one system per half-step over the whole matrix,
                     treating missing cells as zero-valued ratings.

The iteration count is the only stopping criterion.
"""

from __future__ import annotations

import logging
import warnings
from typing import List, Optional, Tuple

import numpy as np

from .errors import DegenerateInputWarning, PreconditionError
from .evaluation import reconstruct, reconstruction_error
from .linalg import regularized_gram, solve_system
from .mask import as_rating_matrix, build_mask
from .ranking import predict, top_n

LOGGER = logging.getLogger(__name__)

# Factors are drawn from uniform [0, INIT_SCALE)
INIT_SCALE = 5.0


# ─────────────────────────────────────────────
# Factor initialization
# ─────────────────────────────────────────────

def initialize_factors(
    rows: int,
    cols: int,
    k: int,
    random_state=None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw initial X ``(rows, k)`` and Y ``(k, cols)`` from uniform [0, 5).

    ``random_state`` is passed to ``np.random.default_rng``: ``None`` for a
    fresh stream, an int seed, or an existing Generator to share a stream.
    """
    for name, value in (("rows", rows), ("cols", cols), ("k", k)):
        if int(value) != value or value < 1:
            raise PreconditionError(f"{name} must be a positive integer, got {value!r}")

    rng = np.random.default_rng(random_state)
    X = rng.uniform(0.0, INIT_SCALE, size=(int(rows), int(k)))
    Y = rng.uniform(0.0, INIT_SCALE, size=(int(k), int(cols)))
    return X, Y


# ─────────────────────────────────────────────
# Solver
# ─────────────────────────────────────────────

class AlternatingLeastSquares:
    """
    ALS matrix factorization over a dense explicit-rating matrix.

    Parameters mirror the usual ALS API: ``factors`` (rank k),
    ``regularization`` (λ), ``iterations`` and ``random_state``.
    ``weighted`` picks the per-row masked solve (default) or the dense
    whole-matrix solve. ``track_error`` records the weighted error after
    every iteration in ``error_history``.
    """

    def __init__(
        self,
        factors: int = 10,
        regularization: float = 0.1,
        iterations: int = 15,
        random_state=42,
        weighted: bool = True,
        track_error: bool = False,
    ):
        self.factors = factors
        self.reg = regularization
        self.iterations = iterations
        self.random_state = random_state
        self.weighted = weighted
        self.track_error = track_error

        self.user_factors: Optional[np.ndarray] = None
        self.item_factors: Optional[np.ndarray] = None
        self.mask: Optional[np.ndarray] = None
        self.training_error: Optional[float] = None
        self.error_history: List[float] = []
        self.degenerate_users = np.array([], dtype=int)
        self.degenerate_items = np.array([], dtype=int)
        self.fitted = False

        self._ratings: Optional[np.ndarray] = None

    def __repr__(self) -> str:
        return (
            f"AlternatingLeastSquares(factors={self.factors}, "
            f"regularization={self.reg}, iterations={self.iterations}, "
            f"weighted={self.weighted})"
        )

    def _check_params(self) -> None:
        if isinstance(self.factors, bool) or int(self.factors) != self.factors or self.factors < 1:
            raise PreconditionError(f"factors must be an integer >= 1, got {self.factors!r}")
        if isinstance(self.iterations, bool) or int(self.iterations) != self.iterations or self.iterations < 0:
            raise PreconditionError(f"iterations must be an integer >= 0, got {self.iterations!r}")
        if not np.isfinite(self.reg) or self.reg < 0:
            raise PreconditionError(f"regularization must be >= 0, got {self.reg!r}")

    def fit(self, matrix):
        """
        Train on ``matrix`` (users × items; 0 or NaN = missing).

        The input is copied, never modified. On a NumericalError the fit is
        aborted and the model keeps no factors.
        """
        if self.fitted:
            raise RuntimeError("Model is already fitted. Create a new instance to refit.")

        self._check_params()
        ratings = as_rating_matrix(matrix)
        W = build_mask(ratings)
        Q = np.nan_to_num(ratings, nan=0.0)

        rows, cols = Q.shape
        k = int(self.factors)
        if k > min(rows, cols):
            LOGGER.warning(
                "factors=%d exceeds min(rows, cols)=%d; normal equations may be ill-posed",
                k, min(rows, cols),
            )

        self.degenerate_users = np.flatnonzero(~W.any(axis=1))
        self.degenerate_items = np.flatnonzero(~W.any(axis=0))
        if self.degenerate_users.size or self.degenerate_items.size:
            warnings.warn(
                f"{self.degenerate_users.size} user(s) and {self.degenerate_items.size} "
                "item(s) have no observed ratings; their predictions are undefined",
                DegenerateInputWarning,
                stacklevel=2,
            )

        X, Y = initialize_factors(rows, cols, k, self.random_state)

        LOGGER.info(
            "Fitting ALS: %dx%d, factors=%d, λ=%g, iterations=%d, weighted=%s",
            rows, cols, k, self.reg, self.iterations, self.weighted,
        )

        history: List[float] = []
        for it in range(int(self.iterations)):
            if self.weighted:
                X = self._solve_users(Q, W, Y)
                Y = self._solve_items(Q, W, X)
            else:
                X = solve_system(regularized_gram(Y, self.reg), Y @ Q.T).T
                Y = solve_system(regularized_gram(X.T, self.reg), X.T @ Q)

            if self.track_error:
                err = reconstruction_error(W, Q, X, Y)
                history.append(err)
                LOGGER.debug("Iter %d/%d - weighted error: %.6f", it + 1, self.iterations, err)

        self.user_factors = X
        self.item_factors = Y
        self.mask = W
        self.error_history = history
        self.training_error = reconstruction_error(W, Q, X, Y)
        self._ratings = ratings
        self.fitted = True

        LOGGER.info("ALS fit done - weighted error: %.6f", self.training_error)
        return self

    def _solve_users(self, Q: np.ndarray, W: np.ndarray, Y: np.ndarray) -> np.ndarray:
        X = np.zeros((Q.shape[0], Y.shape[0]))
        for u in range(Q.shape[0]):
            w = W[u]
            if not w.any():
                continue
            Yw = Y * w
            A = Yw @ Y.T
            A[np.diag_indices_from(A)] += self.reg
            X[u] = solve_system(A, Yw @ Q[u])
        return X

    def _solve_items(self, Q: np.ndarray, W: np.ndarray, X: np.ndarray) -> np.ndarray:
        Y = np.zeros((X.shape[1], Q.shape[1]))
        for i in range(Q.shape[1]):
            w = W[:, i]
            if not w.any():
                continue
            Xw = X.T * w
            A = Xw @ X
            A[np.diag_indices_from(A)] += self.reg
            Y[:, i] = solve_system(A, Xw @ Q[:, i])
        return Y

    # ── fitted-model helpers ───────────────────────

    def _require_fitted(self) -> None:
        if not self.fitted:
            raise RuntimeError("Model is not fitted yet. Call fit() first.")

    def reconstruct(self) -> np.ndarray:
        self._require_fitted()
        return reconstruct(self.user_factors, self.item_factors)

    def error(self) -> float:
        """Weighted squared error of the fitted factors on the training ratings."""
        self._require_fitted()
        return reconstruction_error(self.mask, self._ratings, self.user_factors, self.item_factors)

    def predict(self, user: int, item: int) -> float:
        self._require_fitted()
        return predict(self._ratings, self.reconstruct(), user, item)

    def recommend(self, user: int, n: int = 10, item_names=None):
        self._require_fitted()
        return top_n(self._ratings, self.reconstruct(), user, n, item_names=item_names)


def fit(
    matrix,
    factors: int,
    iterations: int,
    regularization: float,
    *,
    random_state=None,
    weighted: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """Fit ALS and return ``(X, Y)``; deterministic for a fixed ``random_state``."""
    model = AlternatingLeastSquares(
        factors=factors,
        regularization=regularization,
        iterations=iterations,
        random_state=random_state,
        weighted=weighted,
    )
    model.fit(matrix)
    return model.user_factors, model.item_factors


__all__ = ["INIT_SCALE", "initialize_factors", "AlternatingLeastSquares", "fit"]
