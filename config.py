"""
Configuration file for Snake Duel
=================================

All hyperparameters, board settings, and playback options are centralized here.
Modify these values to experiment with different training configurations.

Usage:
    from config import Config
    cfg = Config()
    print(cfg.LEARNING_RATE)
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Board Settings - Grid size and starting snakes
    2. Rewards - Per-turn reward signal
    3. Neural Network - Layer widths and learning rate
    4. DQN - Discount and exploration schedule
    5. Training - Replay, batching, target sync, episode limits
    6. Playback - Renderer settings
    7. System - Paths, logging, seeding
    """

    # =========================================================================
    # BOARD SETTINGS
    # =========================================================================

    BOARD_WIDTH: int = 20
    BOARD_HEIGHT: int = 20

    # Both snakes start with this many cells
    INITIAL_SNAKE_LENGTH: int = 3

    # =========================================================================
    # REWARDS
    # =========================================================================

    REWARD_DEATH: float = -1.0        # Crashing (replaces every other reward)
    REWARD_SURVIVAL: float = 0.01     # Staying alive for a turn
    REWARD_FOOD: float = 0.5          # Eating food
    REWARD_OPPONENT_DEATH: float = 1.0  # Outliving the opponent this turn

    # Dense shaping added by the trainer on top of the rewards above
    SHAPING_REWARD: float = 0.1

    # =========================================================================
    # NEURAL NETWORK ARCHITECTURE
    # =========================================================================

    # Input: 22 hand-crafted features (see snake_duel.ai.state)
    STATE_SIZE: int = 22

    # Two hidden ReLU layers
    HIDDEN_SIZE_1: int = 128
    HIDDEN_SIZE_2: int = 64

    # STRAIGHT, LEFT, RIGHT
    ACTION_SIZE: int = 3

    # Plain SGD step size
    LEARNING_RATE: float = 0.001

    # =========================================================================
    # DQN HYPERPARAMETERS
    # =========================================================================

    # Discount factor (gamma) - How much to value future rewards
    GAMMA: float = 0.99

    # Starting exploration rate (1.0 = 100% random)
    EPSILON_START: float = 1.0

    # Minimum exploration rate
    EPSILON_END: float = 0.01

    # Decay rate per episode: epsilon *= 0.995 after each episode
    EPSILON_DECAY: float = 0.995

    # =========================================================================
    # TRAINING
    # =========================================================================

    # Experiences sampled per training step
    BATCH_SIZE: int = 64

    # Replay buffer capacity
    MEMORY_SIZE: int = 100_000

    # Sync target network every N agent steps
    TARGET_UPDATE: int = 1000

    # Run a training batch every N agent steps
    TRAIN_EVERY: int = 4

    # Total episodes to train
    MAX_EPISODES: int = 10_000

    # Maximum turns per episode (prevents endless circling)
    MAX_STEPS_PER_EPISODE: int = 1000

    # Save model every N episodes
    SAVE_EVERY: int = 500

    # Log stats every N episodes
    LOG_EVERY: int = 100

    # =========================================================================
    # PLAYBACK
    # =========================================================================

    # Pixels per board cell
    CELL_SIZE: int = 20

    # Renderer frame rate; game speed is a number of frames per move
    FPS: int = 60

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    MODEL_PATH: str = 'models/snake_dqn.pt'
    LOG_DIR: str = 'logs'

    # 'DEBUG', 'INFO', 'WARNING', 'ERROR'
    LOG_LEVEL: str = 'INFO'

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    @property
    def STATE_PATH(self) -> str:
        """Side-car file holding epsilon/step count next to the model."""
        return self.MODEL_PATH + '.state.json'

    def __post_init__(self):
        """Validation."""
        assert self.BOARD_WIDTH >= 8 and self.BOARD_HEIGHT >= 8, "Board must be at least 8x8"
        assert self.INITIAL_SNAKE_LENGTH >= 1, "Snakes need at least one cell"
        assert self.STATE_SIZE > 0, "Network input must be positive"
        assert self.ACTION_SIZE == 3, "Actions are STRAIGHT, LEFT and RIGHT"
        assert self.HIDDEN_SIZE_1 > 0 and self.HIDDEN_SIZE_2 > 0, "Hidden layers must be positive"
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert 0 < self.GAMMA <= 1, "Gamma must be in (0, 1]"
        assert self.BATCH_SIZE > 0, "Batch size must be positive"
        assert self.MEMORY_SIZE >= self.BATCH_SIZE, "Memory must hold at least one batch"
        assert self.TARGET_UPDATE > 0, "Target update interval must be positive"
        assert self.TRAIN_EVERY > 0, "Train interval must be positive"
        assert self.EPSILON_START >= self.EPSILON_END, "Epsilon start must be >= end"
        assert 0 < self.EPSILON_DECAY <= 1, "Epsilon decay must be in (0, 1]"


# Global config instance for easy importing
config = Config()


if __name__ == "__main__":
    cfg = Config()
    print("=" * 60)
    print("Snake Duel - Configuration Summary")
    print("=" * 60)
    print(f"\nBoard: {cfg.BOARD_WIDTH}x{cfg.BOARD_HEIGHT}")
    print(f"\nNeural Network:")
    print(f"   Layers: {cfg.STATE_SIZE} -> {cfg.HIDDEN_SIZE_1} -> {cfg.HIDDEN_SIZE_2} -> {cfg.ACTION_SIZE}")
    print(f"   Learning rate: {cfg.LEARNING_RATE}")
    print(f"\nTraining:")
    print(f"   Batch size: {cfg.BATCH_SIZE}")
    print(f"   Gamma: {cfg.GAMMA}")
    print(f"   Target update: every {cfg.TARGET_UPDATE} steps")
    print(f"\nExploration:")
    print(f"   Epsilon: {cfg.EPSILON_START} -> {cfg.EPSILON_END}")
    print(f"   Decay: {cfg.EPSILON_DECAY}")
    print("=" * 60)
