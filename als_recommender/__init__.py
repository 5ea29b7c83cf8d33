"""Convenience exports for the ALS recommender package."""

from .errors import (
    PreconditionError,
    NumericalError,
    DegenerateInputWarning,
)
from .mask import build_mask
from .als import (
    initialize_factors,
    AlternatingLeastSquares,
    fit,
)
from .evaluation import (
    reconstruct,
    reconstruction_error,
    rmse,
)
from .ranking import (
    Recommendation,
    scale_scores,
    predict,
    top_n,
    best_items,
    cosine_similarity,
    similar_items,
)

__all__ = [
    "PreconditionError",
    "NumericalError",
    "DegenerateInputWarning",
    "build_mask",
    "initialize_factors",
    "AlternatingLeastSquares",
    "fit",
    "reconstruct",
    "reconstruction_error",
    "rmse",
    "Recommendation",
    "scale_scores",
    "predict",
    "top_n",
    "best_items",
    "cosine_similarity",
    "similar_items",
]
