"""
DQN Agent
=========

The agent that learns to play Snake Duel using Deep Q-Learning. One agent
controls both snakes (shared-weight self-play): the trainer encodes the board
from each snake's perspective and asks the same agent for both moves.

Key Components:
    1. Policy Network  - Used for action selection, trained every few steps
    2. Target Network  - Periodic copy of the policy, used for TD targets
    3. Replay Buffer   - Stores experiences for training
    4. Epsilon-Greedy  - Balances exploration vs exploitation

Training Algorithm (DQN):
    1. Observe state s
    2. Choose action a (epsilon-greedy)
    3. Execute action, observe reward r and next state s'
    4. Store (s, a, r, s', done) in replay buffer
    5. Sample mini-batch from replay buffer
    6. Calculate target: y = r + gamma * max_a' Q_target(s', a')   (y = r if done)
    7. Update policy network toward y, one transition at a time
    8. Periodically sync target network with policy network

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

import json
import os
import random
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np

from .errors import ModelLoadError
from .network import QNetwork, max_index, max_value
from .replay_buffer import ReplayBuffer, Transition
from .state import NUM_ACTIONS, Action
from snake_duel.utils.logger import get_logger, log_model_event

from config import Config

_logger = get_logger(__name__)


@dataclass
class AgentState:
    """
    Training progress that is not part of the network weights.

    Saved next to the model so a resumed run continues its exploration
    schedule and target-sync cadence.
    """
    epsilon: float
    step_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentState':
        return cls(epsilon=float(data['epsilon']), step_count=int(data['step_count']))

    def save_state(self, path: str) -> None:
        """Write this state as JSON."""
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_state(cls, path: str) -> 'AgentState':
        """
        Read a state written by save_state().

        Raises:
            ModelLoadError: If the file is missing or malformed
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return cls.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ModelLoadError(f"Failed to read agent state {path}: {e}") from e


class DQNAgent:
    """
    DQN Agent for reinforcement learning.

    The agent maintains two networks:
        - policy_net: Updated every TRAIN_EVERY steps
        - target_net: Overwritten with the policy weights every TARGET_UPDATE steps

    Action Selection:
        - With probability epsilon: random action (exploration)
        - With probability (1-epsilon): best Q-value action (exploitation)

    Attributes:
        policy_net: Network used for action selection
        target_net: Network used for computing targets
        memory: Experience replay buffer
        epsilon: Current exploration rate
        step_count: Number of train() calls so far

    Example:
        >>> agent = DQNAgent(Config(), seed=42)
        >>> action = agent.select_action(state)
        >>> agent.remember(state, action, reward, next_state, done)
        >>> loss = agent.train()
    """

    def __init__(self, config: Optional[Config] = None, seed: Optional[int] = None):
        """
        Initialize the DQN agent.

        Args:
            config: Configuration object
            seed: Seed for exploration; the network and buffer seeds are
                derived from it (None = nondeterministic)
        """
        self.config = config or Config()
        self.state_size = self.config.STATE_SIZE
        self.action_size = self.config.ACTION_SIZE

        self.gamma = self.config.GAMMA
        self.batch_size = self.config.BATCH_SIZE
        self.train_every = self.config.TRAIN_EVERY
        self.target_update = self.config.TARGET_UPDATE

        # Each component gets its own generator, seeded in a fixed order
        self._rng = random.Random(seed)
        network_seed = self._rng.getrandbits(63)
        buffer_seed = self._rng.getrandbits(63)

        self.policy_net = QNetwork(
            self.state_size,
            self.config.HIDDEN_SIZE_1,
            self.config.HIDDEN_SIZE_2,
            self.action_size,
            learning_rate=self.config.LEARNING_RATE,
            seed=network_seed,
        )
        self.target_net = self.policy_net.clone()

        self.memory = ReplayBuffer(
            capacity=self.config.MEMORY_SIZE,
            state_size=self.state_size,
            seed=buffer_seed,
        )

        # Exploration
        self.epsilon = self.config.EPSILON_START

        self.step_count = 0

        # Training metrics (bounded to prevent memory growth during long training)
        self.losses: deque = deque(maxlen=10000)

    # -------------------------------------------------------------------------
    # Acting
    # -------------------------------------------------------------------------

    def select_action(self, state: np.ndarray) -> Action:
        """
        Select an action using the epsilon-greedy policy.

        Args:
            state: Encoded state vector

        Returns:
            Chosen relative action
        """
        if self._rng.random() < self.epsilon:
            return Action(self._rng.randrange(NUM_ACTIONS))
        return self.select_action_greedy(state)

    def select_action_greedy(self, state: np.ndarray) -> Action:
        """Best action by Q-value; the lowest index wins ties."""
        return Action(max_index(self.policy_net.forward(state)))

    def get_q_values(self, state: np.ndarray) -> np.ndarray:
        """
        Get Q-values for all actions (useful for visualization).

        Args:
            state: Encoded state vector

        Returns:
            Array of Q-values for each action
        """
        return self.policy_net.forward(state)

    # -------------------------------------------------------------------------
    # Learning
    # -------------------------------------------------------------------------

    def remember(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        done: bool
    ) -> None:
        """
        Store experience in replay buffer.

        Args:
            state: Current state
            action: Action taken
            reward: Reward received
            next_state: Next state
            done: Whether the episode ended for this snake
        """
        self.memory.add(Transition(state, int(action), float(reward), next_state, bool(done)))

    def td_target(self, transition: Transition) -> float:
        """Regression target: r if terminal, else r + gamma * max Q_target(s')."""
        if transition.done:
            return transition.reward
        return transition.reward + self.gamma * max_value(self.target_net.forward(transition.next_state))

    def train(self) -> float:
        """
        Count one step and, on every TRAIN_EVERY-th step, train on one batch.

        Each sampled transition updates the policy network immediately, in
        sampled order, before the next one is processed.

        Returns:
            Mean squared TD error of the batch (measured before each update),
            or 0.0 when no training happened
        """
        self.step_count += 1

        if not self.memory.is_ready(self.batch_size):
            return 0.0

        if self.step_count % self.train_every != 0:
            return 0.0

        batch = self.memory.sample(self.batch_size)

        total_loss = 0.0
        for transition in batch:
            target = self.td_target(transition)
            output, cache = self.policy_net.forward_with_cache(transition.state)
            error = float(output[transition.action]) - target
            total_loss += error * error
            self.policy_net.backward(cache, output, transition.action, target)

        loss = total_loss / len(batch)
        self.losses.append(loss)

        if self.step_count % self.target_update == 0:
            self.update_target_network()

        return loss

    def update_target_network(self) -> None:
        """Hard update: copy policy network weights to target network."""
        self.target_net.copy_from(self.policy_net)
        _logger.debug(f"Target network synced at step {self.step_count}")

    def decay_epsilon(self) -> None:
        """Decay exploration rate, never below EPSILON_END."""
        self.epsilon = max(self.config.EPSILON_END, self.epsilon * self.config.EPSILON_DECAY)

    def set_epsilon(self, value: float) -> None:
        """Override the exploration rate (0 for deterministic playback)."""
        self.epsilon = value

    def get_average_loss(self, n: int = 100) -> float:
        """Get average of last n losses."""
        if not self.losses:
            return 0.0
        recent = list(self.losses)[-n:]
        return sum(recent) / len(recent)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, path: str) -> None:
        """Save the policy network weights."""
        self.policy_net.save(path)
        log_model_event('save', path, step=self.step_count, epsilon=f"{self.epsilon:.4f}")

    def load(self, path: str) -> None:
        """
        Replace the policy network with the one stored at `path`.

        The target network becomes a fresh copy of the loaded policy.

        Raises:
            ModelLoadError: If the file cannot be loaded or its input/output
                widths do not match this agent
        """
        net = QNetwork.load(path)
        if net.input_size != self.state_size or net.output_size != self.action_size:
            raise ModelLoadError(
                f"Model {path} is {net.input_size} -> {net.output_size}, "
                f"agent expects {self.state_size} -> {self.action_size}"
            )

        self.policy_net = net
        self.target_net = net.clone()
        log_model_event('load', path, layers=f"{net.dims}")

    def get_state(self) -> AgentState:
        return AgentState(epsilon=self.epsilon, step_count=self.step_count)

    def set_state(self, state: AgentState) -> None:
        self.epsilon = state.epsilon
        self.step_count = state.step_count
