"""
Multi-task mixture-of-experts model for crossrec.

- Expert: per-service linear + ReLU transformer
- GateNetwork: per-task softmax over experts
- MMoEModel: combines experts per task, one expert pass for all tasks
"""

from crossrec.model.experts import (
    Expert,
    create_default_experts,
    init_weights,
    init_bias,
)
from crossrec.model.gate import (
    GateNetwork,
    GATE_AFFINITY,
    create_default_gates,
    init_gate_weights,
)
from crossrec.model.mmoe import (
    MMoEModel,
    MMoETaskOutput,
    build_input_vector,
)

__all__ = [
    "Expert",
    "create_default_experts",
    "init_weights",
    "init_bias",
    "GateNetwork",
    "GATE_AFFINITY",
    "create_default_gates",
    "init_gate_weights",
    "MMoEModel",
    "MMoETaskOutput",
    "build_input_vector",
]
