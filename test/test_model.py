"""
Unit tests for crossrec/model/ modules.

Tests:
- experts.py: Expert forward pass and seeded factory
- gate.py: Softmax gating and seeded factory
- mmoe.py: Input assembly and task/all-task forward passes
"""

import math
import warnings
import pytest
from unittest.mock import MagicMock

import numpy as np


# =============================================================================
# Expert Tests
# =============================================================================

class TestExpert:
    """Test expert networks."""

    def test_output_dimension(self):
        """Expert output has output_dim entries."""
        from crossrec.model.experts import Expert

        weights = [
            [math.sin((i + 1) * (j + 1) * 0.5) * 0.1 for j in range(10)]
            for i in range(8)
        ]
        expert = Expert("brain", input_dim=10, output_dim=8, weights=weights, bias=[0.0] * 8)

        output = expert.forward([0.5] * 10)
        assert len(output) == 8

    def test_relu_clips_negative_activations(self):
        """Negative pre-activations are clipped to zero."""
        from crossrec.model.experts import Expert

        expert = Expert(
            "brain",
            input_dim=4,
            output_dim=4,
            weights=[
                [1, 0, 0, 0],
                [-1, 0, 0, 0],
                [0, 1, 0, 0],
                [0, -1, 0, 0],
            ],
            bias=[0, 0, 0, 0],
        )

        assert expert.forward([1, 1, 1, 1]) == [1.0, 0.0, 1.0, 0.0]

    def test_bias_is_added(self):
        """Bias shifts the pre-activation."""
        from crossrec.model.experts import Expert

        expert = Expert("cafe", input_dim=2, output_dim=2,
                        weights=[[1, 0], [0, 1]], bias=[0.5, -2.0])

        assert expert.forward([1, 1]) == pytest.approx([1.5, 0.0])

    def test_short_input_is_zero_padded(self):
        """Missing trailing inputs count as zero instead of raising."""
        from crossrec.model.experts import Expert

        expert = Expert("brain", input_dim=4, output_dim=1,
                        weights=[[1, 1, 1, 1]], bias=[0])

        assert expert.forward([2, 3]) == pytest.approx([5.0])

    def test_long_input_is_truncated(self):
        """Inputs longer than input_dim are truncated."""
        from crossrec.model.experts import Expert

        expert = Expert("brain", input_dim=2, output_dim=1,
                        weights=[[1, 1]], bias=[0])

        assert expert.forward([1, 2, 100]) == pytest.approx([3.0])

    def test_weights_are_read_only(self):
        """Experts are immutable after creation."""
        from crossrec.model.experts import Expert

        expert = Expert("brain", input_dim=2, output_dim=1, weights=[[1, 1]], bias=[0])

        with pytest.raises(ValueError):
            expert.weights[0, 0] = 5.0

    def test_default_experts_cover_all_services(self):
        """Factory creates one expert per service."""
        from crossrec.model.experts import create_default_experts
        from crossrec.core.constants import ALL_SERVICES

        experts = create_default_experts(20, 8)

        assert set(experts) == set(ALL_SERVICES)
        for service, expert in experts.items():
            assert expert.service_id == service
            assert expert.weights.shape == (8, 20)
            assert expert.bias.shape == (8,)

    def test_default_experts_are_distinct(self):
        """Different seeds give each expert a different output."""
        from crossrec.model.experts import create_default_experts
        from crossrec.core.constants import ALL_SERVICES

        experts = create_default_experts(20, 8)
        x = [(i + 1) * 0.05 for i in range(20)]
        outputs = [experts[s].forward(x) for s in ALL_SERVICES]

        for i in range(len(outputs)):
            for j in range(i + 1, len(outputs)):
                diff = sum(abs(a - b) for a, b in zip(outputs[i], outputs[j]))
                assert diff > 0

    def test_seeding_is_reproducible(self):
        """Same dimensions and seed always give the same parameters."""
        from crossrec.model.experts import init_weights, init_bias

        np.testing.assert_array_equal(init_weights(4, 6, 3), init_weights(4, 6, 3))
        np.testing.assert_array_equal(init_bias(4, 3), init_bias(4, 3))

    def test_seed_formula(self):
        """W[i][j] = sin(seed·(i·cols+j+1)·2.1)·sqrt(2/(rows+cols))."""
        from crossrec.model.experts import init_weights, init_bias

        w = init_weights(3, 5, 2)
        expected = math.sin(2 * (1 * 5 + 3 + 1) * 2.1) * math.sqrt(2 / 8)
        assert w[1, 3] == pytest.approx(expected)

        b = init_bias(3, 2)
        assert b[2] == pytest.approx(math.sin(2 * 3 * 1.3) * 0.1)


# =============================================================================
# Gate Tests
# =============================================================================

class TestSoftmax:
    """Test numerically stable softmax."""

    def test_sums_to_one(self):
        from crossrec.utils.math_utils import softmax

        assert sum(softmax([1.0, 2.0, 3.0])) == pytest.approx(1.0, abs=1e-10)

    def test_uniform_for_equal_logits(self):
        from crossrec.utils.math_utils import softmax

        assert softmax([1, 1, 1, 1, 1]) == pytest.approx([0.2] * 5)

    def test_stable_with_large_values(self):
        from crossrec.utils.math_utils import softmax

        result = softmax([1000, 1001, 1002])
        assert all(math.isfinite(v) for v in result)
        assert sum(result) == pytest.approx(1.0, abs=1e-10)

    def test_stable_with_very_negative_values(self):
        from crossrec.utils.math_utils import softmax

        result = softmax([-1e6, -1e6 + 1, -1e6 + 2])
        assert all(math.isfinite(v) for v in result)
        assert sum(result) == pytest.approx(1.0, abs=1e-10)

    def test_largest_logit_gets_largest_weight(self):
        from crossrec.utils.math_utils import softmax

        result = softmax([0.1, 0.5, 3.0, 0.2, 0.1])
        assert result.index(max(result)) == 2

    def test_empty(self):
        from crossrec.utils.math_utils import softmax

        assert softmax([]) == []

    def test_positive_infinity_takes_all_weight(self):
        from crossrec.utils.math_utils import softmax

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = softmax([math.inf, 0.0, 1.0, math.inf])

        assert result == [0.5, 0.0, 0.0, 0.5]

    def test_negative_infinity_gets_no_weight(self):
        from crossrec.utils.math_utils import softmax

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = softmax([-math.inf, 0.0, 0.0])

        assert result == pytest.approx([0.0, 0.5, 0.5])

    def test_all_negative_infinity_is_uniform(self):
        from crossrec.utils.math_utils import softmax

        assert softmax([-math.inf] * 4) == [0.25] * 4

    def test_nan_is_uniform(self):
        from crossrec.utils.math_utils import softmax

        assert softmax([math.nan, 1.0]) == [0.5, 0.5]


class TestGateNetwork:
    """Test gate networks."""

    @pytest.mark.parametrize("seed", range(10))
    def test_weights_form_simplex(self, seed):
        """Gate outputs are non-negative and sum to 1 for arbitrary inputs."""
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ALL_SERVICES

        rng = np.random.default_rng(seed)
        scale = 10.0 ** rng.integers(-3, 7)
        x = (rng.standard_normal(40) * scale).tolist()

        gates = create_default_gates(40)
        for service in ALL_SERVICES:
            weights = gates[service].forward(x)
            assert len(weights) == 5
            assert all(w >= 0 for w in weights)
            assert all(math.isfinite(w) for w in weights)
            assert sum(weights) == pytest.approx(1.0, abs=1e-9)

    def test_zero_input_gives_uniform_weights(self):
        """No bias term: a zero input yields equal logits."""
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ServiceId

        gates = create_default_gates(20)
        assert gates[ServiceId.PLANNER].forward([0.0] * 20) == pytest.approx([0.2] * 5)

    def test_tasks_have_different_distributions(self):
        """Each task's gate weights the experts differently."""
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ServiceId

        gates = create_default_gates(20)
        x = [0.5] * 20

        brain = gates[ServiceId.BRAIN].forward(x)
        place = gates[ServiceId.PLACE].forward(x)

        assert sum(abs(a - b) for a, b in zip(brain, place)) > 0.01

    def test_self_affinity_dominates(self):
        """Each gate starts out favoring its own service's expert."""
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ALL_SERVICES

        gates = create_default_gates(20)
        x = [0.5] * 20

        for idx, service in enumerate(ALL_SERVICES):
            weights = gates[service].forward(x)
            assert weights.index(max(weights)) == idx

    def test_expert_order(self):
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ALL_SERVICES, ServiceId

        gate = create_default_gates(10)[ServiceId.STORE]
        assert gate.expert_order == ALL_SERVICES

    def test_infinite_input_stays_on_simplex(self):
        """An infinite feature gives a valid distribution without numpy warnings."""
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ServiceId

        gate = create_default_gates(40)[ServiceId.BRAIN]

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            weights = gate.forward([math.inf] + [0.0] * 39)

        assert all(math.isfinite(w) and w >= 0 for w in weights)
        assert sum(weights) == pytest.approx(1.0)


# =============================================================================
# MMoE Tests
# =============================================================================

class TestMMoEModel:
    """Test the mixture-of-experts orchestrator."""

    def test_build_input_vector(self):
        """Segments are concatenated in canonical order; missing ones are zero."""
        from crossrec.model.mmoe import build_input_vector
        from crossrec.core.types import UserFeatures

        features = UserFeatures(
            user_id="user-1",
            active_services=["brain", "planner"],
            service_features={
                "brain": [1, 2, 3, 4, 5, 6, 7, 8],
                "planner": [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8],
            },
        )

        x = build_input_vector(features, 8)

        assert len(x) == 40
        assert x[0] == 1
        assert x[7] == 8
        assert x[8] == 0.1
        assert x[15] == 0.8
        assert all(v == 0 for v in x[16:])

    def test_build_input_vector_pads_short_segments(self):
        from crossrec.model.mmoe import build_input_vector
        from crossrec.core.types import UserFeatures

        features = UserFeatures(
            user_id="u",
            active_services=["place"],
            service_features={"place": [9, 9]},
        )

        x = build_input_vector(features, 4)

        assert x == [0, 0, 0, 0, 0, 0, 0, 0, 9, 9, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0]

    def test_forward_task_dimensions(self, mmoe_model):
        result = mmoe_model.forward_task([0.5] * 40, "brain")

        assert result.task_id.value == "brain"
        assert len(result.output) == 16
        assert len(result.gate_weights) == 5
        assert sum(result.gate_weights.values()) == pytest.approx(1.0, abs=1e-9)

    def test_forward_task_is_gate_weighted_sum(self, mmoe_model):
        """y_k = Σ_i g_k,i(x) · f_i(x)"""
        from crossrec.core.constants import ALL_SERVICES, ServiceId

        x = [0.1 * (i % 7) for i in range(40)]
        result = mmoe_model.forward_task(x, ServiceId.STORE)

        expected = np.zeros(16)
        for service in ALL_SERVICES:
            expected += result.gate_weights[service] * np.array(
                mmoe_model.experts[service].forward(x)
            )

        assert result.output == pytest.approx(expected.tolist())

    def test_forward_all_covers_every_task(self, mmoe_model):
        from crossrec.core.constants import ALL_SERVICES

        results = mmoe_model.forward_all([0.5] * 40)

        for service in ALL_SERVICES:
            assert results[service].task_id == service
            assert len(results[service].output) == 16

    def test_forward_all_computes_each_expert_once(self, mmoe_model):
        """Expert outputs are shared across all five gates."""
        for expert in mmoe_model.experts.values():
            expert.forward_array = MagicMock(wraps=expert.forward_array)

        mmoe_model.forward_all([0.3] * 40)

        for expert in mmoe_model.experts.values():
            assert expert.forward_array.call_count == 1

    def test_forward_all_matches_forward_task(self, mmoe_model):
        from crossrec.core.constants import ALL_SERVICES

        x = [0.2 * ((i * 3) % 5) for i in range(40)]
        all_results = mmoe_model.forward_all(x)

        for service in ALL_SERVICES:
            single = mmoe_model.forward_task(x, service)
            assert all_results[service].output == pytest.approx(single.output)
            assert all_results[service].gate_weights == pytest.approx(single.gate_weights)

    def test_gate_weights_depend_on_active_services(self, mmoe_model):
        from crossrec.core.types import UserFeatures
        from crossrec.core.constants import ALL_SERVICES

        brain_only = UserFeatures(
            user_id="user-brain",
            active_services=["brain"],
            service_features={"brain": [1, 2, 3, 4, 5, 6, 7, 8]},
        )
        brain_place = UserFeatures(
            user_id="user-multi",
            active_services=["brain", "place"],
            service_features={
                "brain": [1, 2, 3, 4, 5, 6, 7, 8],
                "place": [0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 0.4, 0.3],
            },
        )

        a = mmoe_model.forward_task(mmoe_model.build_input_vector(brain_only, 8), "planner")
        b = mmoe_model.forward_task(mmoe_model.build_input_vector(brain_place, 8), "planner")

        diff = sum(abs(a.gate_weights[s] - b.gate_weights[s]) for s in ALL_SERVICES)
        assert diff > 0

    def test_mismatched_expert_output_dim_rejected(self):
        """All experts must share one output dimension."""
        from crossrec.model.mmoe import MMoEModel
        from crossrec.model.experts import create_default_experts, Expert
        from crossrec.core.constants import ServiceId

        experts = create_default_experts(10, 4)
        experts[ServiceId.CAFE] = Expert(
            ServiceId.CAFE, input_dim=10, output_dim=3,
            weights=np.zeros((3, 10)), bias=np.zeros(3),
        )

        with pytest.raises(ValueError):
            MMoEModel(input_dim=10, expert_output_dim=4, experts=experts)

    def test_mismatched_expert_input_dim_rejected(self):
        from crossrec.model.mmoe import MMoEModel
        from crossrec.model.experts import create_default_experts

        with pytest.raises(ValueError, match="expected 10"):
            MMoEModel(input_dim=10, expert_output_dim=4, experts=create_default_experts(12, 4))

    def test_empty_expert_dict_rejected(self):
        """An empty mapping is not the same as "use the defaults"."""
        from crossrec.model.mmoe import MMoEModel

        with pytest.raises(ValueError, match="Missing experts"):
            MMoEModel(input_dim=10, expert_output_dim=4, experts={})

    def test_partial_gates_rejected(self):
        """Every task needs a gate, checked up front rather than in forward_all."""
        from crossrec.model.mmoe import MMoEModel
        from crossrec.model.gate import create_default_gates
        from crossrec.core.constants import ServiceId

        gates = create_default_gates(10)
        del gates[ServiceId.STORE]

        with pytest.raises(ValueError, match="Missing gates.*store"):
            MMoEModel(input_dim=10, expert_output_dim=4, gates=gates)

    def test_mismatched_gate_input_dim_rejected(self):
        from crossrec.model.mmoe import MMoEModel
        from crossrec.model.gate import create_default_gates

        with pytest.raises(ValueError, match="Gate"):
            MMoEModel(input_dim=10, expert_output_dim=4, gates=create_default_gates(8))

    def test_injected_dicts_are_copied(self):
        from crossrec.model.mmoe import MMoEModel
        from crossrec.model.experts import create_default_experts
        from crossrec.core.constants import ServiceId

        experts = create_default_experts(10, 4)
        model = MMoEModel(input_dim=10, expert_output_dim=4, experts=experts)
        del experts[ServiceId.BRAIN]

        assert ServiceId.BRAIN in model.experts


# =============================================================================
# Run Tests
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
