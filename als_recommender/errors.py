"""Exception types shared by the ALS solver, evaluation and ranking layers."""

from __future__ import annotations


# ─────────────────────────────────────────────
# CUSTOM EXCEPTIONS
# ─────────────────────────────────────────────

class PreconditionError(ValueError):
    """Raised when shapes or parameters are invalid, before any numerical work."""
    pass


class NumericalError(RuntimeError):
    """Raised when a normal-equation system is singular or ill-conditioned."""
    pass


class DegenerateInputWarning(UserWarning):
    """Category for all-missing users/items and constant reconstructions."""
    pass
