"""
Experience Replay Buffer
========================

A memory buffer that stores transitions for training the DQN.

Why Experience Replay?
    1. Breaks correlation between consecutive experiences
       (Neural networks learn poorly from correlated data)

    2. Improves sample efficiency
       (Each experience can be used for multiple training steps)

How it works:
    1. Agent plays, stores (state, action, reward, next_state, done) transitions
    2. During training, we sample random batches from the buffer
    3. Old transitions are overwritten when the buffer is full (FIFO)

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .errors import ShapeMismatchError
from snake_duel.utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class Transition:
    """
    One step of experience.

    Attributes:
        state: Feature vector before the move
        action: Relative action taken (index into the Q-value output)
        reward: Reward received for the move
        next_state: Feature vector after the move
        done: Whether the move ended the episode for this snake
    """
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    done: bool


class ReplayBuffer:
    """
    Fixed-size circular buffer of transitions with contiguous numpy storage.

    Sampling is uniform and without replacement inside one batch: indices are
    a random permutation of the stored entries, truncated to the batch size.

    Attributes:
        capacity: Maximum number of transitions kept

    Example:
        >>> buffer = ReplayBuffer(capacity=10000, seed=1)
        >>> buffer.add(Transition(state, 0, 0.01, next_state, False))
        >>> batch = buffer.sample(batch_size=64)
    """

    def __init__(self, capacity: int, state_size: int = 0, seed: Optional[int] = None):
        """
        Initialize the replay buffer.

        Args:
            capacity: Maximum number of transitions to store
            state_size: Length of state vectors (auto-detected on first add if 0)
            seed: Seed for the sampling RNG

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"Replay buffer capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._state_size = state_size
        self._size = 0  # Current number of transitions stored
        self._position = 0  # Next write slot
        self._initialized = False
        self._rng = np.random.default_rng(seed)

        if state_size > 0:
            self._init_arrays(state_size)

    def _init_arrays(self, state_size: int) -> None:
        """Allocate contiguous storage arrays."""
        self._state_size = state_size
        self.states = np.zeros((self.capacity, state_size), dtype=np.float64)
        self.actions = np.zeros(self.capacity, dtype=np.int64)
        self.rewards = np.zeros(self.capacity, dtype=np.float64)
        self.next_states = np.zeros((self.capacity, state_size), dtype=np.float64)
        self.dones = np.zeros(self.capacity, dtype=bool)
        self._initialized = True
        _logger.debug(f"Allocated replay storage ({self.capacity} x {state_size})")

    def add(self, transition: Transition) -> None:
        """
        Store a transition, overwriting the oldest one when full.

        Both vectors are copied, so the caller may reuse its arrays.

        Raises:
            ShapeMismatchError: If a vector does not match the stored state size
        """
        state = np.asarray(transition.state, dtype=np.float64)
        next_state = np.asarray(transition.next_state, dtype=np.float64)

        if not self._initialized:
            self._init_arrays(len(state))

        expected = (self._state_size,)
        if state.shape != expected or next_state.shape != expected:
            raise ShapeMismatchError(
                f"Expected state vectors of shape {expected}, "
                f"got {state.shape} and {next_state.shape}"
            )

        np.copyto(self.states[self._position], state)
        self.actions[self._position] = int(transition.action)
        self.rewards[self._position] = float(transition.reward)
        np.copyto(self.next_states[self._position], next_state)
        self.dones[self._position] = bool(transition.done)

        self._position = (self._position + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)

    def sample(self, batch_size: int) -> List[Transition]:
        """
        Draw up to `batch_size` distinct transitions uniformly at random.

        Returns fewer than `batch_size` transitions (all of them, shuffled)
        when the buffer holds fewer; returns an empty list when empty.

        Args:
            batch_size: Number of transitions wanted

        Returns:
            Transitions in sampled order; vectors are copies
        """
        if self._size == 0 or batch_size <= 0:
            return []

        n = min(batch_size, self._size)
        indices = self._rng.permutation(self._size)[:n]

        return [
            Transition(
                state=self.states[i].copy(),
                action=int(self.actions[i]),
                reward=float(self.rewards[i]),
                next_state=self.next_states[i].copy(),
                done=bool(self.dones[i]),
            )
            for i in indices
        ]

    def __len__(self) -> int:
        """Return current buffer size."""
        return self._size

    def is_full(self) -> bool:
        return self._size == self.capacity

    def is_ready(self, batch_size: int) -> bool:
        """Check if buffer has enough transitions for a full batch."""
        return self._size >= batch_size

    def clear(self) -> None:
        """Forget all transitions; storage is kept for reuse."""
        self._size = 0
        self._position = 0
