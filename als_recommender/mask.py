"""Rating-matrix coercion and the observation mask."""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from .errors import PreconditionError


def as_rating_matrix(matrix) -> np.ndarray:
    """
    Return a float64 copy of ``matrix`` as a dense 2-D array.

    Accepts anything ``np.asarray`` understands plus scipy sparse matrices.
    The caller's object is never modified. Missing entries may be 0 or NaN;
    infinities are rejected.
    """
    if sp.issparse(matrix):
        dense = matrix.toarray().astype(np.float64)
    else:
        dense = np.array(matrix, dtype=np.float64, copy=True)

    if dense.ndim != 2:
        raise PreconditionError(f"Rating matrix must be 2-D, got {dense.ndim}-D")
    if dense.size == 0:
        raise PreconditionError(f"Rating matrix is empty: shape {dense.shape}")
    if np.isinf(dense).any():
        raise PreconditionError("Rating matrix contains infinite values")

    return dense


def build_mask(matrix) -> np.ndarray:
    """1.0 where a rating is observed, 0.0 where it is 0 or NaN."""
    q = as_rating_matrix(matrix)
    observed = (q != 0.0) & ~np.isnan(q)
    return observed.astype(np.float64)


__all__ = ["as_rating_matrix", "build_mask"]
