"""
Training Loop
=============

Orchestrates self-play training:
    1. Run episodes of the duel, one agent driving both snakes
    2. Collect experiences from both perspectives
    3. Train the agent
    4. Track metrics
    5. Save checkpoints

Per turn, for each snake: encode -> select action -> (both snakes) step ->
add distance shaping -> remember -> train once.
"""

import os
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .agent import DQNAgent
from .errors import SnakeDuelError
from .state import action_to_direction, calculate_shaping_reward, encode_state
from snake_duel.game import TIE, DuelGame
from snake_duel.utils.logger import get_logger, log_training_metrics

from config import Config

_logger = get_logger(__name__)


@dataclass
class EpisodeStats:
    """Statistics for a single episode."""
    episode: int
    steps: int
    rewards: Tuple[float, float]
    scores: Tuple[int, int]
    winner: int
    epsilon: float
    avg_loss: float
    duration: float


class TrainingMetrics:
    """
    Tracks and stores training metrics over time.

    Metrics tracked:
        - Episode lengths
        - Total rewards per snake
        - Winners (cumulative wins/ties are never trimmed)
        - Loss values
        - Epsilon values
    """

    def __init__(self, history_length: int = 1000):
        """
        Initialize metrics tracker.

        Args:
            history_length: Maximum per-episode history to store
        """
        self.history_length = history_length

        self.lengths: List[int] = []
        self.rewards: List[Tuple[float, float]] = []
        self.winners: List[int] = []
        self.losses: List[float] = []
        self.epsilons: List[float] = []

        self.wins = [0, 0]
        self.ties = 0
        self.total_steps = 0
        self.episodes = 0

    def add(self, stats: EpisodeStats) -> None:
        """Add episode statistics."""
        self.lengths.append(stats.steps)
        self.rewards.append(stats.rewards)
        self.winners.append(stats.winner)
        self.losses.append(stats.avg_loss)
        self.epsilons.append(stats.epsilon)

        if stats.winner == TIE:
            self.ties += 1
        else:
            self.wins[stats.winner] += 1
        self.total_steps += stats.steps
        self.episodes += 1

        # Trim to history length
        if len(self.lengths) > self.history_length:
            for attr in ['lengths', 'rewards', 'winners', 'losses', 'epsilons']:
                setattr(self, attr, getattr(self, attr)[-self.history_length:])

    def get_recent_average(self, metric: str, n: int = 100) -> float:
        """Get average of last n values for a metric."""
        values = getattr(self, metric, [])
        if not values:
            return 0.0
        return float(np.mean(values[-n:]))

    def get_win_rate(self, snake_id: int, n: int = 100) -> float:
        """Fraction of the last n episodes won by `snake_id`."""
        if not self.winners:
            return 0.0
        recent = self.winners[-n:]
        return sum(1 for w in recent if w == snake_id) / len(recent)


class Trainer:
    """
    Manages the self-play training loop.

    Responsibilities:
        1. Run training episodes
        2. Feed both snakes' experience to the shared agent
        3. Track metrics, log progress and save checkpoints

    Example:
        >>> game = DuelGame(config, seed=1)
        >>> agent = DQNAgent(config, seed=1)
        >>> trainer = Trainer(game, agent, config)
        >>> trainer.train(num_episodes=1000)
    """

    def __init__(self, game: DuelGame, agent: DQNAgent, config: Optional[Config] = None):
        """
        Initialize the trainer.

        Args:
            game: Duel game instance
            agent: DQN agent shared by both snakes
            config: Configuration object
        """
        self.game = game
        self.agent = agent
        self.config = config or Config()

        self.metrics = TrainingMetrics()
        self.current_episode = 0

    def run_episode(self) -> EpisodeStats:
        """
        Run a single training episode and decay epsilon afterwards.

        Returns:
            Episode statistics
        """
        start_time = time.time()

        state = self.game.reset()
        episode_rewards = [0.0, 0.0]
        steps = 0
        bonus = self.config.SHAPING_REWARD

        while not state.game_over and steps < self.config.MAX_STEPS_PER_EPISODE:
            steps += 1

            observations = [encode_state(state, 0), encode_state(state, 1)]
            actions = [self.agent.select_action(obs) for obs in observations]
            directions = [
                action_to_direction(state.snakes[i].direction, actions[i]) for i in range(2)
            ]

            prev_state = state.copy()
            result = self.game.step(directions)
            state = self.game.state

            for i in range(2):
                next_obs = encode_state(state, i)
                reward = result.rewards[i] + calculate_shaping_reward(prev_state, state, i, bonus)
                done = result.died[i] or result.game_over
                self.agent.remember(observations[i], actions[i], reward, next_obs, done)
                episode_rewards[i] += reward

            self.agent.train()

        self.agent.decay_epsilon()

        return EpisodeStats(
            episode=self.current_episode,
            steps=steps,
            rewards=(episode_rewards[0], episode_rewards[1]),
            scores=(state.snakes[0].score, state.snakes[1].score),
            winner=state.winner,
            epsilon=self.agent.epsilon,
            avg_loss=self.agent.get_average_loss(100),
            duration=time.time() - start_time,
        )

    def train(self, num_episodes: Optional[int] = None) -> TrainingMetrics:
        """
        Run the training loop.

        Args:
            num_episodes: Number of episodes (default from config)

        Returns:
            Training metrics
        """
        num_episodes = num_episodes or self.config.MAX_EPISODES

        _logger.info(f"Starting training for {num_episodes} episodes")
        _logger.info(
            f"Board: {self.config.BOARD_WIDTH}x{self.config.BOARD_HEIGHT}, "
            f"epsilon: {self.agent.epsilon:.2f} -> {self.config.EPSILON_END}"
        )

        start_time = time.time()
        recent_lengths: List[int] = []

        for episode in range(1, num_episodes + 1):
            self.current_episode = episode

            stats = self.run_episode()
            self.metrics.add(stats)
            recent_lengths.append(stats.steps)

            if episode % self.config.LOG_EVERY == 0:
                elapsed = max(time.time() - start_time, 1e-9)
                log_training_metrics(
                    episode,
                    self.agent.epsilon,
                    avg_length=sum(recent_lengths) / len(recent_lengths),
                    wins=self.metrics.wins,
                    ties=self.metrics.ties,
                    loss=stats.avg_loss,
                    eps_per_sec=episode / elapsed,
                )
                recent_lengths = []

            if episode % self.config.SAVE_EVERY == 0:
                self.save_checkpoint()

        self.save_checkpoint()

        elapsed = time.time() - start_time
        episodes = max(self.metrics.episodes, 1)
        _logger.info(f"Training complete in {elapsed:.0f}s ({num_episodes / max(elapsed, 1e-9):.1f} eps/s)")
        _logger.info(f"Snake 0 wins: {self.metrics.wins[0]} ({100 * self.metrics.wins[0] / episodes:.1f}%)")
        _logger.info(f"Snake 1 wins: {self.metrics.wins[1]} ({100 * self.metrics.wins[1] / episodes:.1f}%)")
        _logger.info(f"Ties: {self.metrics.ties} ({100 * self.metrics.ties / episodes:.1f}%)")
        _logger.info(f"Final epsilon: {self.agent.epsilon:.4f}")

        return self.metrics

    def save_checkpoint(self) -> bool:
        """
        Save the model and the agent state side-car.

        Failures are logged, not raised, so a full disk never ends training.

        Returns:
            True if both files were written
        """
        try:
            self.agent.save(self.config.MODEL_PATH)
            self.agent.get_state().save_state(self.config.STATE_PATH)
        except (OSError, RuntimeError, SnakeDuelError) as e:
            _logger.error(f"Could not save model to {self.config.MODEL_PATH}: {e}")
            return False
        return True
