"""
Utility module for crossrec.

Provides mathematical utilities and logging configuration.
"""

from crossrec.utils.math_utils import (
    softmax,
    relu,
    fit_length,
    l2_norm,
    identity_matrix,
    invert_matrix,
    pearson_correlation,
    clip,
)
from crossrec.utils.logger_config import (
    setup_logging,
    get_logger,
)

__all__ = [
    "softmax",
    "relu",
    "fit_length",
    "l2_norm",
    "identity_matrix",
    "invert_matrix",
    "pearson_correlation",
    "clip",
    "setup_logging",
    "get_logger",
]
