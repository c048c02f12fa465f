"""
Mathematical utility functions for crossrec.

Provides the vector and matrix operations shared by the experts, gates,
cross-domain mapper and scorer.
"""

import math
from typing import List, Sequence

import numpy as np

from crossrec.core.constants import SINGULAR_PIVOT_THRESHOLD
from crossrec.core.exceptions import SingularMatrixError


def softmax(values: Sequence[float], temperature: float = 1.0) -> List[float]:
    """
    Compute softmax probabilities.

    P(i) = e^(v_i/τ) / Σ_j e^(v_j/τ)

    Args:
        values: Input values (logits)
        temperature: Temperature parameter (higher = more uniform)

    Returns:
        Probability distribution. Infinite logits take all the weight;
        NaN logits give a uniform distribution.
    """
    if len(values) == 0:
        return []

    arr = np.asarray(values, dtype=float)
    uniform = [1.0 / len(arr)] * len(arr)

    # Scale by temperature
    scaled = arr / temperature

    if np.isnan(scaled).any():
        return uniform

    # +inf logits share all the mass
    top = np.isposinf(scaled)
    if top.any():
        return (top / np.sum(top)).tolist()
    if np.isneginf(scaled).all():
        return uniform

    # Subtract max for numerical stability
    scaled = scaled - np.max(scaled)

    exp_vals = np.exp(scaled)
    return (exp_vals / np.sum(exp_vals)).tolist()


def relu(values: np.ndarray) -> np.ndarray:
    """Element-wise rectified linear unit."""
    return np.maximum(0.0, values)


def fit_length(values: Sequence[float], length: int) -> np.ndarray:
    """
    Zero-pad or truncate a vector to an exact length.

    Args:
        values: Input vector (any length)
        length: Desired length

    Returns:
        New float array of the requested length
    """
    out = np.zeros(length, dtype=float)
    arr = np.asarray(values, dtype=float).ravel()
    n = min(length, arr.shape[0])
    out[:n] = arr[:n]
    return out


def l2_norm(values: Sequence[float]) -> float:
    """Euclidean length of a vector."""
    return float(np.linalg.norm(np.asarray(values, dtype=float)))


def identity_matrix(rows: int, cols: int) -> np.ndarray:
    """
    Identity matrix, zero-padded or truncated to rows × cols.

    Row i has a 1 at column i when i < cols and is all zeros otherwise.
    """
    return np.eye(rows, cols, dtype=float)


def invert_matrix(
    matrix: np.ndarray,
    pivot_threshold: float = SINGULAR_PIVOT_THRESHOLD
) -> np.ndarray:
    """
    Invert a square matrix with Gauss-Jordan elimination.

    Uses partial pivoting: at each column the row with the largest
    absolute value in that column is swapped into the pivot position.

    Args:
        matrix: Square matrix to invert
        pivot_threshold: Pivots with smaller magnitude are treated as zero

    Returns:
        The inverse matrix

    Raises:
        SingularMatrixError: If a pivot falls below the threshold
    """
    a = np.array(matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {a.shape}")

    n = a.shape[0]
    aug = np.hstack([a, np.eye(n)])

    for col in range(n):
        max_row = col + int(np.argmax(np.abs(aug[col:, col])))
        if max_row != col:
            aug[[col, max_row]] = aug[[max_row, col]]

        pivot = aug[col, col]
        if abs(pivot) < pivot_threshold:
            raise SingularMatrixError(col, pivot, pivot_threshold)

        aug[col, col:] /= pivot

        for row in range(n):
            if row == col:
                continue
            factor = aug[row, col]
            if factor != 0.0:
                aug[row, col:] -= factor * aug[col, col:]

    return aug[:, n:]


def pearson_correlation(x: List[float], y: List[float]) -> float:
    """
    Compute Pearson correlation coefficient.

    Args:
        x: First variable
        y: Second variable

    Returns:
        Correlation coefficient (-1 to 1), 0.0 for fewer than two
        points or zero variance
    """
    n = len(x)
    if n != len(y) or n < 2:
        return 0.0

    mean_x = sum(x) / n
    mean_y = sum(y) / n

    cov = sum((x[i] - mean_x) * (y[i] - mean_y) for i in range(n))
    var_x = sum((x[i] - mean_x) ** 2 for i in range(n))
    var_y = sum((y[i] - mean_y) ** 2 for i in range(n))

    if var_x == 0 or var_y == 0:
        return 0.0

    return cov / math.sqrt(var_x * var_y)


def clip(value: float, min_val: float, max_val: float) -> float:
    """
    Clip value to range.

    Args:
        value: Value to clip
        min_val: Minimum value
        max_val: Maximum value

    Returns:
        Clipped value
    """
    return max(min_val, min(max_val, value))
