"""
linalg.py
Dense matrix primitives used by the ALS solver.

NumPy provides multiply/transpose/scale/add; SciPy provides the
positive-definite solve. This module only adds the pieces the solver
needs on top of them and maps SciPy failures onto NumericalError.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy import linalg as sla

from .errors import NumericalError


def regularized_gram(mat: np.ndarray, regularization: float) -> np.ndarray:
    """Return ``mat @ mat.T + regularization * I``."""
    gram = mat @ mat.T
    gram[np.diag_indices_from(gram)] += regularization
    return gram


def solve_system(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve ``a @ x = b`` for ``x``.

    ``a`` is a symmetric positive-definite ``k x k`` system matrix and ``b``
    may carry one right-hand side (shape ``(k,)``) or many (``(k, m)``);
    all columns are solved against a single Cholesky factorization.

    Raises NumericalError when ``a`` is singular, not positive definite,
    ill-conditioned to working precision, or the solution is not finite.
    """
    if not (np.isfinite(a).all() and np.isfinite(b).all()):
        raise NumericalError("System contains non-finite values")

    with warnings.catch_warnings():
        warnings.simplefilter("error", sla.LinAlgWarning)
        try:
            x = sla.solve(a, b, assume_a="pos")
        except sla.LinAlgWarning as exc:
            raise NumericalError(f"Ill-conditioned system: {exc}") from exc
        except sla.LinAlgError as exc:
            raise NumericalError(f"Singular system: {exc}") from exc

    if not np.isfinite(x).all():
        raise NumericalError("Solve produced non-finite values")

    return x


__all__ = ["regularized_gram", "solve_system"]
