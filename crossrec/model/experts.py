"""
Expert networks: service-specific feature processors.

Each expert f_i(x) maps the shared input vector into a latent
representation through a linear layer with ReLU activation:

    f_i(x) = ReLU(W_i · x + b_i)

Weights are fixed, deterministically seeded parameters. Every expert gets
a different seed so each starts with a distinct "perspective" on the input.
"""

import math
from typing import Dict, List, Sequence

import numpy as np

from crossrec.core.constants import (
    ServiceId,
    ALL_SERVICES,
    EXPERT_WEIGHT_FREQUENCY,
    EXPERT_BIAS_FREQUENCY,
    EXPERT_BIAS_SCALE,
)
from crossrec.utils.math_utils import relu, fit_length


def _frozen(values, shape) -> np.ndarray:
    arr = np.array(values, dtype=float).reshape(shape)
    arr.setflags(write=False)
    return arr


class Expert:
    """
    An expert network producing one service's view of the input.

    Inputs shorter than ``input_dim`` are zero-padded; this is a
    leniency, not an error.
    """

    def __init__(
        self,
        service_id: ServiceId,
        input_dim: int,
        output_dim: int,
        weights: Sequence[Sequence[float]],
        bias: Sequence[float]
    ):
        """
        Initialize an expert.

        Args:
            service_id: Service this expert specializes in
            input_dim: Input feature dimension
            output_dim: Output (hidden) dimension
            weights: output_dim × input_dim weight matrix
            bias: Bias vector of length output_dim
        """
        self.service_id = ServiceId(service_id)
        self.input_dim = input_dim
        self.output_dim = output_dim
        self._weights = _frozen(weights, (output_dim, input_dim))
        self._bias = _frozen(bias, (output_dim,))

    @property
    def weights(self) -> np.ndarray:
        """Read-only weight matrix."""
        return self._weights

    @property
    def bias(self) -> np.ndarray:
        """Read-only bias vector."""
        return self._bias

    def forward_array(self, x: np.ndarray) -> np.ndarray:
        """Forward pass on an input already fitted to ``input_dim``."""
        return relu(self._weights @ x + self._bias)

    def forward(self, input_vector: Sequence[float]) -> List[float]:
        """
        Forward pass: f(x) = ReLU(W · x + b)

        Args:
            input_vector: Feature vector (padded/truncated to input_dim)

        Returns:
            Expert output of length output_dim
        """
        x = fit_length(input_vector, self.input_dim)
        return self.forward_array(x).tolist()

    def __repr__(self) -> str:
        return (
            f"Expert(service_id={self.service_id.value!r}, "
            f"input_dim={self.input_dim}, output_dim={self.output_dim})"
        )


# =============================================================================
# Expert Factory
# =============================================================================

def init_weights(rows: int, cols: int, seed: int) -> np.ndarray:
    """
    Deterministic Xavier-scaled weight matrix.

    W[i][j] = sin(seed · (i·cols + j + 1) · 2.1) · sqrt(2 / (rows + cols))

    The same (rows, cols, seed) always yields the same matrix.
    """
    scale = math.sqrt(2.0 / (rows + cols))
    positions = np.arange(rows * cols, dtype=float).reshape(rows, cols) + 1.0
    return np.sin(seed * positions * EXPERT_WEIGHT_FREQUENCY) * scale


def init_bias(dim: int, seed: int) -> np.ndarray:
    """Deterministic bias: b[i] = sin(seed · (i + 1) · 1.3) · 0.1"""
    positions = np.arange(1, dim + 1, dtype=float)
    return np.sin(seed * positions * EXPERT_BIAS_FREQUENCY) * EXPERT_BIAS_SCALE


def create_default_experts(
    input_dim: int,
    output_dim: int
) -> Dict[ServiceId, Expert]:
    """
    Create one expert per service.

    Seeds follow canonical service order (brain=1 ... cafe=5):
    - brain: thoughts, emotions, vision embeddings
    - planner: execution, grit, progress tracking
    - place: matching, social connections, complementarity
    - store: purchases, revenue, market validation
    - cafe: offline interactions, physical trust signals

    Args:
        input_dim: Input feature dimension
        output_dim: Shared output dimension

    Returns:
        Dict of {service: Expert}
    """
    experts = {}
    for idx, service in enumerate(ALL_SERVICES):
        seed = idx + 1
        experts[service] = Expert(
            service_id=service,
            input_dim=input_dim,
            output_dim=output_dim,
            weights=init_weights(output_dim, input_dim, seed),
            bias=init_bias(output_dim, seed),
        )
    return experts
