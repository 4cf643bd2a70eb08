"""
Tests for the Replay Buffer.

These tests verify:
    - Buffer initialization
    - Experience storage (add)
    - Sampling behavior
    - Circular buffer overflow
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from snake_duel.ai.errors import ShapeMismatchError
from snake_duel.ai.replay_buffer import ReplayBuffer, Transition


@pytest.fixture
def state_size():
    """State size for testing."""
    return 6


@pytest.fixture
def buffer(state_size):
    """Create a replay buffer instance."""
    return ReplayBuffer(capacity=10, state_size=state_size, seed=0)


@pytest.fixture
def make_transition(state_size):
    """Build a transition whose vectors are filled with `tag`."""
    def _make(tag, done=False):
        return Transition(
            state=np.full(state_size, float(tag)),
            action=tag % 3,
            reward=float(tag),
            next_state=np.full(state_size, float(tag) + 0.5),
            done=done,
        )
    return _make


class TestReplayBufferInitialization:
    """Test buffer initialization."""

    def test_buffer_starts_empty(self, buffer):
        assert len(buffer) == 0
        assert not buffer.is_full()

    def test_capacity_set_correctly(self, buffer):
        assert buffer.capacity == 10

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_non_positive_capacity_rejected(self, capacity):
        with pytest.raises(ValueError):
            ReplayBuffer(capacity=capacity)

    def test_state_size_auto_detection(self, make_transition, state_size):
        """State size is taken from the first transition."""
        buffer = ReplayBuffer(capacity=5)
        buffer.add(make_transition(1))
        assert buffer.states.shape == (5, state_size)


class TestReplayBufferAdd:
    """Test experience storage."""

    def test_add_increments_size(self, buffer, make_transition):
        for i in range(3):
            buffer.add(make_transition(i))
        assert len(buffer) == 3

    def test_add_copies_vectors(self, buffer, state_size):
        """Mutating the caller's arrays must not change stored data."""
        state = np.ones(state_size)
        next_state = np.ones(state_size)
        buffer.add(Transition(state, 0, 0.0, next_state, False))
        state[:] = 99.0
        next_state[:] = 99.0

        stored = buffer.sample(1)[0]
        np.testing.assert_array_equal(stored.state, np.ones(state_size))
        np.testing.assert_array_equal(stored.next_state, np.ones(state_size))

    def test_wrong_state_length_rejected(self, buffer, state_size):
        with pytest.raises(ShapeMismatchError):
            buffer.add(Transition(np.zeros(state_size + 1), 0, 0.0, np.zeros(state_size + 1), False))

    def test_wrong_next_state_length_rejected(self, buffer, state_size):
        with pytest.raises(ShapeMismatchError):
            buffer.add(Transition(np.zeros(state_size), 0, 0.0, np.zeros(state_size - 1), False))

    def test_fields_preserved(self, buffer, make_transition):
        buffer.add(make_transition(4, done=True))
        t = buffer.sample(1)[0]
        assert t.action == 1
        assert t.reward == 4.0
        assert t.done is True
        assert t.next_state[0] == 4.5


class TestReplayBufferOverflow:
    """Test circular buffer behavior."""

    def test_never_exceeds_capacity(self, buffer, make_transition):
        for i in range(25):
            buffer.add(make_transition(i))
            assert len(buffer) <= buffer.capacity
        assert buffer.is_full()

    def test_oldest_evicted(self, buffer, make_transition):
        """After capacity + k adds only the most recent `capacity` remain."""
        for i in range(13):
            buffer.add(make_transition(i))

        tags = sorted(int(t.state[0]) for t in buffer.sample(100))
        assert tags == list(range(3, 13))


class TestReplayBufferSampling:
    """Test sampling."""

    def test_sample_from_empty(self, buffer):
        assert buffer.sample(4) == []

    def test_sample_size(self, buffer, make_transition):
        for i in range(8):
            buffer.add(make_transition(i))
        assert len(buffer.sample(4)) == 4

    def test_sample_truncated_when_short(self, buffer, make_transition):
        """Fewer entries than requested: every entry exactly once."""
        for i in range(3):
            buffer.add(make_transition(i))
        batch = buffer.sample(8)
        assert sorted(int(t.state[0]) for t in batch) == [0, 1, 2]

    def test_no_duplicates_in_batch(self, buffer, make_transition):
        for i in range(10):
            buffer.add(make_transition(i))
        for _ in range(20):
            tags = [int(t.state[0]) for t in buffer.sample(6)]
            assert len(set(tags)) == 6

    def test_seeded_sampling_is_reproducible(self, make_transition):
        a = ReplayBuffer(capacity=10, seed=5)
        b = ReplayBuffer(capacity=10, seed=5)
        for i in range(10):
            a.add(make_transition(i))
            b.add(make_transition(i))
        assert [t.reward for t in a.sample(5)] == [t.reward for t in b.sample(5)]

    def test_sampling_covers_all_entries(self, buffer, make_transition):
        """Uniform sampling eventually returns every stored entry."""
        for i in range(10):
            buffer.add(make_transition(i))
        seen = set()
        for _ in range(50):
            seen.update(int(t.state[0]) for t in buffer.sample(2))
        assert seen == set(range(10))

    def test_is_ready(self, buffer, make_transition):
        for i in range(3):
            buffer.add(make_transition(i))
        assert not buffer.is_ready(4)
        buffer.add(make_transition(3))
        assert buffer.is_ready(4)


class TestReplayBufferClear:

    def test_clear_resets_size(self, buffer, make_transition):
        for i in range(10):
            buffer.add(make_transition(i))
        buffer.clear()
        assert len(buffer) == 0
        assert buffer.sample(4) == []

    def test_reuse_after_clear(self, buffer, make_transition):
        for i in range(10):
            buffer.add(make_transition(i))
        buffer.clear()
        buffer.add(make_transition(42))
        batch = buffer.sample(4)
        assert len(batch) == 1
        assert batch[0].reward == 42.0
