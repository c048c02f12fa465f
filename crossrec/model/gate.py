"""
Gate networks: task-specific expert weighting.

    g^k(x) = softmax(W^k_g · x)

Each task (target service) k owns a gate that weights the shared experts
differently. The planner gate, for example, starts out leaning on the
brain expert, since thoughts predict planning behavior.

Gate logits carry no bias term. This keeps the gate minimal; a bias
vector can be added to ``GateNetwork.forward`` if trained gates need one.
"""

from typing import Dict, List, Sequence, Tuple

import numpy as np

from crossrec.core.constants import (
    ServiceId,
    ALL_SERVICES,
    NUM_SERVICES,
    GATE_BASE,
    GATE_SPREAD,
    GATE_FREQUENCY,
)
from crossrec.utils.math_utils import softmax, fit_length


class GateNetwork:
    """Softmax gate that turns an input vector into expert weights."""

    def __init__(
        self,
        task_id: ServiceId,
        input_dim: int,
        num_experts: int,
        weights: Sequence[Sequence[float]]
    ):
        """
        Initialize a gate.

        Args:
            task_id: Target service this gate serves
            input_dim: Input feature dimension
            num_experts: Number of experts being weighted
            weights: num_experts × input_dim weight matrix
        """
        self.task_id = ServiceId(task_id)
        self.input_dim = input_dim
        self.num_experts = num_experts
        arr = np.array(weights, dtype=float).reshape(num_experts, input_dim)
        arr.setflags(write=False)
        self._weights = arr

    @property
    def weights(self) -> np.ndarray:
        """Read-only gate weight matrix."""
        return self._weights

    @property
    def expert_order(self) -> Tuple[ServiceId, ...]:
        """Service order for interpreting gate outputs."""
        return ALL_SERVICES[:self.num_experts]

    def logits_array(self, x: np.ndarray) -> np.ndarray:
        """Raw gate logits W · x for an input fitted to ``input_dim``."""
        return self._weights @ x

    def forward_array(self, x: np.ndarray) -> List[float]:
        return softmax(self.logits_array(x))

    def forward(self, input_vector: Sequence[float]) -> List[float]:
        """
        Compute gate weights.

        Args:
            input_vector: Feature vector (padded/truncated to input_dim)

        Returns:
            Non-negative weights, one per expert, summing to 1
        """
        return self.forward_array(fit_length(input_vector, self.input_dim))

    def __repr__(self) -> str:
        return (
            f"GateNetwork(task_id={self.task_id.value!r}, "
            f"input_dim={self.input_dim}, num_experts={self.num_experts})"
        )


# =============================================================================
# Gate Factory
# =============================================================================

# Prior affinity: rows = task (gate), cols = expert, canonical order
# (brain, planner, place, store, cafe). Encodes the cross-service signal
# topology: brain→planner, cafe→place, store→place, planner↔place.
GATE_AFFINITY: Dict[ServiceId, Tuple[float, ...]] = {
    ServiceId.BRAIN:   (1.0, 0.3, 0.2, 0.1, 0.2),
    ServiceId.PLANNER: (0.5, 1.0, 0.3, 0.2, 0.1),
    ServiceId.PLACE:   (0.3, 0.4, 1.0, 0.3, 0.5),
    ServiceId.STORE:   (0.2, 0.3, 0.4, 1.0, 0.3),
    ServiceId.CAFE:    (0.2, 0.2, 0.5, 0.3, 1.0),
}


def init_gate_weights(affinities: Sequence[float], input_dim: int) -> np.ndarray:
    """
    Spread each expert's affinity across the input dimensions.

    W[e][j] = affinity[e] · (0.8 + 0.4 · sin((j + 1)(e + 1) · 0.7))
    """
    num_experts = len(affinities)
    e = np.arange(1, num_experts + 1, dtype=float)[:, None]
    j = np.arange(1, input_dim + 1, dtype=float)[None, :]
    variation = GATE_BASE + GATE_SPREAD * np.sin(j * e * GATE_FREQUENCY)
    return np.asarray(affinities, dtype=float)[:, None] * variation


def create_default_gates(input_dim: int) -> Dict[ServiceId, GateNetwork]:
    """
    Create one gate per task, initialized from GATE_AFFINITY.

    Args:
        input_dim: Input feature dimension

    Returns:
        Dict of {task: GateNetwork}
    """
    gates = {}
    for task_id in ALL_SERVICES:
        gates[task_id] = GateNetwork(
            task_id=task_id,
            input_dim=input_dim,
            num_experts=NUM_SERVICES,
            weights=init_gate_weights(GATE_AFFINITY[task_id], input_dim),
        )
    return gates
