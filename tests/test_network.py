"""
Tests for the hand-written Q-Network.

These tests verify:
    - Construction and validation
    - Forward pass values and determinism
    - Backward pass (compared against torch autograd)
    - Copying without aliasing
    - Save/load round trip and legacy format migration
"""

import pytest
import numpy as np
import torch
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from snake_duel.ai.errors import ModelLoadError, NetworkConfigError, ShapeMismatchError
from snake_duel.ai.network import QNetwork, max_index, max_value, read_weights


@pytest.fixture
def net():
    """Small seeded network."""
    return QNetwork(4, 8, 4, 2, learning_rate=0.1, seed=1234)


@pytest.fixture
def x():
    return np.array([0.5, -0.2, 0.1, 0.9])


def reference_forward(net, x):
    """Forward pass recomputed in numpy from the network's own weights."""
    w1, w2, w3 = net.get_weights()
    b1, b2, b3 = net.get_biases()
    h1 = np.maximum(x @ w1 + b1, 0.0)
    h2 = np.maximum(h1 @ w2 + b2, 0.0)
    return h2 @ w3 + b3


class TestNetworkInitialization:
    """Test network construction."""

    def test_shapes(self, net):
        """Weights are (fan_in, fan_out), biases (fan_out,)."""
        assert tuple(net.w1.shape) == (4, 8)
        assert tuple(net.w2.shape) == (8, 4)
        assert tuple(net.w3.shape) == (4, 2)
        assert tuple(net.b1.shape) == (8,)
        assert tuple(net.b2.shape) == (4,)
        assert tuple(net.b3.shape) == (2,)

    def test_double_precision(self, net):
        assert net.w1.dtype == torch.float64
        assert net.b3.dtype == torch.float64

    def test_biases_start_at_zero(self, net):
        for b in net.get_biases():
            assert np.all(b == 0.0)

    def test_same_seed_same_weights(self):
        a = QNetwork(4, 8, 4, 2, 0.1, seed=7)
        b = QNetwork(4, 8, 4, 2, 0.1, seed=7)
        for wa, wb in zip(a.get_weights(), b.get_weights()):
            np.testing.assert_array_equal(wa, wb)

    def test_different_seed_different_weights(self):
        a = QNetwork(4, 8, 4, 2, 0.1, seed=7)
        b = QNetwork(4, 8, 4, 2, 0.1, seed=8)
        assert not np.array_equal(a.get_weights()[0], b.get_weights()[0])

    def test_xavier_scale(self):
        """Initial weights have std close to sqrt(2 / (fan_in + fan_out))."""
        net = QNetwork(200, 300, 4, 2, 0.1, seed=0)
        expected = np.sqrt(2.0 / 500)
        assert abs(net.get_weights()[0].std() - expected) < 0.1 * expected

    def test_count_parameters(self, net):
        assert net.count_parameters() == 4 * 8 + 8 + 8 * 4 + 4 + 4 * 2 + 2

    @pytest.mark.parametrize("dims", [(0, 8, 4, 2), (4, 0, 4, 2), (4, 8, 0, 2), (4, 8, 4, 0)])
    def test_zero_width_layer_rejected(self, dims):
        with pytest.raises(NetworkConfigError):
            QNetwork(*dims, learning_rate=0.1)

    @pytest.mark.parametrize("lr", [0.0, -0.01, float('nan'), float('inf')])
    def test_bad_learning_rate_rejected(self, lr):
        with pytest.raises(NetworkConfigError):
            QNetwork(4, 8, 4, 2, learning_rate=lr)


class TestForward:
    """Test the forward pass."""

    def test_output_length(self, net, x):
        assert net.forward(x).shape == (2,)

    def test_matches_reference(self, net, x):
        """Output equals a numpy recomputation from the same weights."""
        np.testing.assert_allclose(net.forward(x), reference_forward(net, x), rtol=0, atol=1e-12)

    def test_seeded_output_is_pinned(self, net, x):
        """Seed 1234 with input [0.5, -0.2, 0.1, 0.9] always gives the same Q-values."""
        expected = np.array([-0.07062478366445042, 0.0017930845962905602])
        np.testing.assert_allclose(net.forward(x), expected, rtol=0, atol=1e-12)

    def test_deterministic(self, net, x):
        np.testing.assert_array_equal(net.forward(x), net.forward(x))

    def test_cache_matches_forward(self, net, x):
        output, cache = net.forward_with_cache(x)
        np.testing.assert_array_equal(output, net.forward(x))
        np.testing.assert_array_equal(cache.input.numpy(), x)
        assert torch.all(cache.h1 >= 0)
        assert torch.all(cache.h2 >= 0)

    def test_accepts_lists(self, net, x):
        np.testing.assert_array_equal(net.forward(list(x)), net.forward(x))

    def test_wrong_length_rejected(self, net):
        with pytest.raises(ShapeMismatchError):
            net.forward(np.zeros(5))

    def test_forward_does_not_modify_input(self, net, x):
        original = x.copy()
        net.forward_with_cache(x)
        np.testing.assert_array_equal(x, original)


class TestBackward:
    """Test backpropagation and the SGD update."""

    def test_matches_autograd(self, net, x):
        """One update equals SGD on 0.5 * (Q(s, a) - target)^2."""
        params = [t.clone().requires_grad_(True) for t in (net.w1, net.b1, net.w2, net.b2, net.w3, net.b3)]
        w1, b1, w2, b2, w3, b3 = params
        xt = torch.as_tensor(x, dtype=torch.float64)
        q = torch.relu(torch.relu(xt @ w1 + b1) @ w2 + b2) @ w3 + b3
        loss = 0.5 * (q[1] - 2.0) ** 2
        loss.backward()
        expected = [(p - 0.1 * p.grad).detach() for p in params]

        output, cache = net.forward_with_cache(x)
        net.backward(cache, output, 1, 2.0)

        actual = [net.w1, net.b1, net.w2, net.b2, net.w3, net.b3]
        for a, e in zip(actual, expected):
            torch.testing.assert_close(a, e, rtol=0, atol=1e-12)

    def test_moves_toward_target(self):
        net = QNetwork(4, 8, 4, 2, learning_rate=0.01, seed=3)
        state = np.array([1.0, 0.5, -0.5, 0.25])
        before = net.forward(state)[0]
        target = before + 1.0
        output, cache = net.forward_with_cache(state)
        net.backward(cache, output, 0, target)
        after = net.forward(state)[0]
        assert abs(after - target) < abs(before - target)

    def test_zero_error_is_noop(self, net, x):
        before = net.get_weights() + net.get_biases()
        output, cache = net.forward_with_cache(x)
        net.backward(cache, output, 0, float(output[0]))
        after = net.get_weights() + net.get_biases()
        for b, a in zip(before, after):
            np.testing.assert_array_equal(b, a)

    def test_only_taken_action_output_bias_changes(self, net, x):
        output, cache = net.forward_with_cache(x)
        net.backward(cache, output, 0, float(output[0]) + 1.0)
        b3 = net.get_biases()[2]
        assert b3[0] != 0.0
        assert b3[1] == 0.0

    @pytest.mark.parametrize("action", [-1, 2])
    def test_bad_action_rejected(self, net, x, action):
        output, cache = net.forward_with_cache(x)
        with pytest.raises(ShapeMismatchError):
            net.backward(cache, output, action, 0.0)


class TestCopying:
    """Test clone() and copy_from()."""

    def test_clone_is_equal(self, net, x):
        twin = net.clone()
        assert twin.dims == net.dims
        assert twin.learning_rate == net.learning_rate
        np.testing.assert_array_equal(twin.forward(x), net.forward(x))

    def test_clone_does_not_alias(self, net, x):
        """Mutating the clone leaves the source untouched."""
        before = net.forward(x)
        twin = net.clone()
        output, cache = twin.forward_with_cache(x)
        twin.backward(cache, output, 0, 100.0)
        np.testing.assert_array_equal(net.forward(x), before)
        assert not np.array_equal(twin.forward(x), before)

    def test_copy_from(self, net, x):
        other = QNetwork(4, 8, 4, 2, learning_rate=0.1, seed=99)
        other.copy_from(net)
        np.testing.assert_array_equal(other.forward(x), net.forward(x))
        other.b3.add_(1.0)
        assert not np.array_equal(other.forward(x), net.forward(x))

    def test_copy_from_mismatched_dims(self, net):
        other = QNetwork(4, 16, 4, 2, learning_rate=0.1, seed=0)
        with pytest.raises(NetworkConfigError):
            other.copy_from(net)


class TestPersistence:
    """Test save/load."""

    def test_round_trip_is_exact(self, net, tmp_path):
        path = str(tmp_path / "net.pt")
        net.save(path)
        loaded = QNetwork.load(path)

        assert loaded.dims == net.dims
        assert loaded.learning_rate == net.learning_rate
        for a, b in zip(loaded.get_weights() + loaded.get_biases(), net.get_weights() + net.get_biases()):
            np.testing.assert_array_equal(a, b)

    def test_repeated_round_trip(self, net, tmp_path):
        path = str(tmp_path / "net.pt")
        net.save(path)
        QNetwork.load(path).save(path)
        loaded = QNetwork.load(path)
        for a, b in zip(loaded.get_weights(), net.get_weights()):
            np.testing.assert_array_equal(a, b)

    def test_save_creates_directories(self, net, tmp_path):
        path = tmp_path / "a" / "b" / "net.pt"
        net.save(str(path))
        assert path.exists()

    def test_loads_legacy_layout(self, net, tmp_path, x):
        path = str(tmp_path / "legacy.pt")
        torch.save({
            'W1': net.w1.clone(), 'B1': net.b1.clone().unsqueeze(0), 'B1Vec': net.b1.clone(),
            'W2': net.w2.clone(), 'B2': net.b2.clone().unsqueeze(0), 'B2Vec': net.b2.clone(),
            'W3': net.w3.clone(), 'B3': net.b3.clone().unsqueeze(0), 'B3Vec': net.b3.clone(),
            'InputSize': 4, 'HiddenSize1': 8, 'HiddenSize2': 4, 'OutputSize': 2,
            'LearningRate': 0.1,
        }, path)

        assert read_weights(path).version == 1
        loaded = QNetwork.load(path)
        assert loaded.dims == (4, 8, 4, 2)
        np.testing.assert_array_equal(loaded.forward(x), net.forward(x))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelLoadError):
            QNetwork.load(str(tmp_path / "nope.pt"))

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "garbage.pt"
        path.write_bytes(b"not a model")
        with pytest.raises(ModelLoadError):
            QNetwork.load(str(path))

    def test_unknown_layout(self, tmp_path):
        path = str(tmp_path / "other.pt")
        torch.save({'weights': torch.zeros(3)}, path)
        with pytest.raises(ModelLoadError):
            QNetwork.load(path)

    def test_inconsistent_shapes(self, net, tmp_path):
        path = str(tmp_path / "bad.pt")
        net.save(path)
        payload = torch.load(path, weights_only=True)
        payload['w2'] = torch.zeros(3, 3, dtype=torch.float64)
        torch.save(payload, path)
        with pytest.raises(ModelLoadError):
            QNetwork.load(path)


class TestHelpers:

    def test_max_index_first_wins(self):
        assert max_index([1.0, 3.0, 3.0]) == 1
        assert max_index(np.array([2.0, 2.0, 2.0])) == 0

    def test_max_value(self):
        assert max_value([-1.0, 0.5, 0.25]) == 0.5

    def test_nan_after_first_is_skipped(self):
        assert max_index([1.0, float("nan"), 0.0]) == 0
        assert max_index([0.0, float("nan"), 2.0]) == 2
        assert max_value([1.0, float("nan"), 0.0]) == 1.0
