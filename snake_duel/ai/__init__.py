"""
AI Module
=========

Deep Q-Learning components for the snake duel.

Classes:
    QNetwork     - Hand-written three-layer Q-network
    DQNAgent     - DQN agent with epsilon-greedy exploration
    ReplayBuffer - Experience replay memory
    Trainer      - Self-play training loop
"""

from .errors import ModelLoadError, NetworkConfigError, ShapeMismatchError, SnakeDuelError
from .network import QNetwork
from .replay_buffer import ReplayBuffer, Transition
from .state import NUM_ACTIONS, STATE_SIZE, Action, encode_state
from .agent import AgentState, DQNAgent
from .trainer import Trainer

__all__ = [
    'SnakeDuelError',
    'NetworkConfigError',
    'ShapeMismatchError',
    'ModelLoadError',
    'QNetwork',
    'ReplayBuffer',
    'Transition',
    'Action',
    'NUM_ACTIONS',
    'STATE_SIZE',
    'encode_state',
    'AgentState',
    'DQNAgent',
    'Trainer',
]
