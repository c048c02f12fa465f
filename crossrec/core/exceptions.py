"""
Exceptions raised by the recommendation engine.
"""


class CrossRecError(Exception):
    """Base class for all crossrec errors."""


class NotInitializedError(CrossRecError):
    """Raised when recommendations are requested before init_engine()."""

    def __init__(self, message: str = None):
        super().__init__(
            message
            or "Recommendation engine not initialized. Call init_engine() first."
        )


class InvalidTrainingDataError(CrossRecError, ValueError):
    """Raised when a cross-domain mapping cannot be learned from the data."""

    def __init__(self, message: str, source_service=None, target_service=None):
        self.source_service = source_service
        self.target_service = target_service
        super().__init__(message)


class SingularMatrixError(CrossRecError, ValueError):
    """Raised when Gauss-Jordan elimination meets a (near-)zero pivot."""

    def __init__(self, column: int, pivot: float, threshold: float):
        self.column = column
        self.pivot = pivot
        self.threshold = threshold
        super().__init__(
            f"Matrix is numerically singular: |pivot| = {abs(pivot):.3e} "
            f"at column {column} (threshold: {threshold:.1e})"
        )
