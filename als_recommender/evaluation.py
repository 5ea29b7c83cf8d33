"""
evaluation.py
Reconstruction of the rating matrix from fitted factors and the
weighted squared-error metrics computed against the observed ratings.
"""

from __future__ import annotations

import numpy as np

from .errors import PreconditionError


def _check_factors(X: np.ndarray, Y: np.ndarray) -> None:
    if X.ndim != 2 or Y.ndim != 2:
        raise PreconditionError(
            f"Factors must be 2-D, got X{X.shape} and Y{Y.shape}"
        )
    if X.shape[1] != Y.shape[0]:
        raise PreconditionError(
            f"Factor ranks differ: X{X.shape} cannot multiply Y{Y.shape}"
        )


def reconstruct(X, Y) -> np.ndarray:
    """Q_hat = X @ Y, shape (rows, cols)."""
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64)
    _check_factors(X, Y)
    return X @ Y


def _weighted_residual(W, Q, X, Y) -> np.ndarray:
    W = np.asarray(W, dtype=np.float64)
    Q = np.asarray(Q, dtype=np.float64)
    q_hat = reconstruct(X, Y)

    if not (W.shape == Q.shape == q_hat.shape):
        raise PreconditionError(
            f"Shape mismatch: W{W.shape}, Q{Q.shape}, X@Y{q_hat.shape}"
        )

    # NaN marks a missing rating; W is 0 there, so the cell contributes nothing
    diff = np.where(np.isnan(Q), 0.0, Q - q_hat)
    return W * diff


def reconstruction_error(W, Q, X, Y) -> float:
    """
    Weighted sum of squared errors ``sum((W * (Q - X @ Y)) ** 2)``.

    Only cells with ``W != 0`` contribute. None of the inputs are modified.
    """
    residual = _weighted_residual(W, Q, X, Y)
    return float(np.sum(residual ** 2))


def rmse(W, Q, X, Y) -> float:
    """Root-mean-square error over the observed cells."""
    n_observed = float(np.sum(np.asarray(W, dtype=np.float64) != 0))
    if n_observed == 0:
        raise PreconditionError("RMSE is undefined without observed ratings")
    return float(np.sqrt(reconstruction_error(W, Q, X, Y) / n_observed))


__all__ = ["reconstruct", "reconstruction_error", "rmse"]
