"""
Multi-gate Mixture-of-Experts (MMoE) orchestrator.

For each task k:

    y^k = Σ_i g^k_i(x) · f_i(x)

where f_i are the shared experts (one per service) and g^k is the
task-specific gate. The task tower is the identity in this model.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from crossrec.core.constants import ServiceId, ALL_SERVICES, NUM_SERVICES
from crossrec.core.types import UserFeatures, ServiceLike, to_service_id
from crossrec.model.experts import Expert, create_default_experts
from crossrec.model.gate import GateNetwork, create_default_gates
from crossrec.utils.math_utils import fit_length

logger = logging.getLogger(__name__)


@dataclass
class MMoETaskOutput:
    """Result of an MMoE forward pass for a single task."""
    task_id: ServiceId
    output: List[float]                  # Σ g_i(x) · f_i(x)
    gate_weights: Dict[ServiceId, float]  # sums to 1


def build_input_vector(
    features: UserFeatures,
    feature_dim_per_service: int,
    services: Sequence[ServiceId] = ALL_SERVICES
) -> List[float]:
    """
    Concatenate per-service feature vectors into one input vector.

    Each segment is padded or truncated to ``feature_dim_per_service``.
    A service without a vector contributes an all-zero segment, so a
    service that was never used looks the same to the gates as one used
    with all-zero features.

    Args:
        features: User features
        feature_dim_per_service: Width of each segment
        services: Segment order

    Returns:
        Input vector of length len(services) × feature_dim_per_service
    """
    segments = []
    for service in services:
        vec = features.service_features.get(service)
        if vec is None:
            segments.append(np.zeros(feature_dim_per_service))
        else:
            segments.append(fit_length(vec, feature_dim_per_service))
    return np.concatenate(segments).tolist()


class MMoEModel:
    """
    Multi-gate Mixture-of-Experts model.

    Five experts (one per service) are shared across five tasks; each task
    has its own gate deciding how much each expert contributes.
    """

    def __init__(
        self,
        input_dim: int,
        expert_output_dim: int,
        experts: Optional[Dict[ServiceId, Expert]] = None,
        gates: Optional[Dict[ServiceId, GateNetwork]] = None
    ):
        """
        Initialize the model.

        Args:
            input_dim: Dimension of the concatenated input vector
            expert_output_dim: Output dimension of every expert
            experts: Optional pre-built experts (seeded defaults if None)
            gates: Optional pre-built gates (seeded defaults if None)
        """
        self.input_dim = input_dim
        self.expert_output_dim = expert_output_dim
        if experts is None:
            experts = create_default_experts(input_dim, expert_output_dim)
        if gates is None:
            gates = create_default_gates(input_dim)
        self._experts = dict(experts)
        self._gates = dict(gates)

        for service, expert in self._experts.items():
            if expert.input_dim != input_dim or expert.output_dim != expert_output_dim:
                raise ValueError(
                    f"Expert '{service.value}' is {expert.input_dim}→{expert.output_dim}, "
                    f"expected {input_dim}→{expert_output_dim}"
                )
        for task_id, gate in self._gates.items():
            if gate.input_dim != input_dim or gate.num_experts != NUM_SERVICES:
                raise ValueError(
                    f"Gate '{task_id.value}' is {gate.input_dim}→{gate.num_experts}, "
                    f"expected {input_dim}→{NUM_SERVICES}"
                )

        missing = [s.value for s in ALL_SERVICES if s not in self._experts]
        if missing:
            raise ValueError(f"Missing experts for services: {missing}")
        missing = [s.value for s in ALL_SERVICES if s not in self._gates]
        if missing:
            raise ValueError(f"Missing gates for tasks: {missing}")

        logger.debug(
            "MMoE model built: input_dim=%d expert_output_dim=%d experts=%d gates=%d",
            input_dim, expert_output_dim, len(self._experts), len(self._gates),
        )

    @property
    def experts(self) -> Dict[ServiceId, Expert]:
        """Experts keyed by service (for inspection)."""
        return dict(self._experts)

    @property
    def gates(self) -> Dict[ServiceId, GateNetwork]:
        """Gates keyed by task (for inspection)."""
        return dict(self._gates)

    def build_input_vector(
        self,
        features: UserFeatures,
        feature_dim_per_service: int
    ) -> List[float]:
        """See :func:`build_input_vector`."""
        return build_input_vector(features, feature_dim_per_service)

    def _expert_outputs(self, x: np.ndarray) -> np.ndarray:
        """Stack of expert outputs, shape (num_experts, expert_output_dim)."""
        return np.vstack([self._experts[s].forward_array(x) for s in ALL_SERVICES])

    def _combine(
        self,
        task_id: ServiceId,
        x: np.ndarray,
        expert_outputs: np.ndarray
    ) -> MMoETaskOutput:
        gate = self._gates[task_id]
        weights = gate.forward_array(x)
        combined = np.asarray(weights) @ expert_outputs
        return MMoETaskOutput(
            task_id=task_id,
            output=combined.tolist(),
            gate_weights={ALL_SERVICES[i]: weights[i] for i in range(NUM_SERVICES)},
        )

    def forward_task(self, input_vector: Sequence[float], task_id: ServiceLike) -> MMoETaskOutput:
        """
        Run the forward pass for one task.

        1. Every expert processes the full input: f_i(x)
        2. The task gate computes weights: g^k(x)
        3. Weighted combination: y^k = Σ g^k_i(x) · f_i(x)

        Args:
            input_vector: Concatenated input vector
            task_id: Target service

        Returns:
            MMoETaskOutput for the task
        """
        task_id = to_service_id(task_id)
        x = fit_length(input_vector, self.input_dim)
        return self._combine(task_id, x, self._expert_outputs(x))

    def forward_all(self, input_vector: Sequence[float]) -> Dict[ServiceId, MMoETaskOutput]:
        """
        Run the forward pass for every task.

        Expert outputs are computed once and shared by all gates.
        """
        x = fit_length(input_vector, self.input_dim)
        expert_outputs = self._expert_outputs(x)
        return {
            task_id: self._combine(task_id, x, expert_outputs)
            for task_id in ALL_SERVICES
        }
