#!/usr/bin/env python3
"""
Snake Duel - Main Entry Point
=============================

Train a DQN agent by self-play on the two-snake duel, or watch it play.

Usage:
    # Train headless (default)
    python main.py --episodes 5000

    # Resume training from a saved model
    python main.py --load models/snake_dqn.pt

    # Watch a trained model
    python main.py --play --model models/snake_dqn.pt

    # Watch random play
    python main.py --random

    # Show what a model file contains
    python main.py --inspect models/snake_dqn.pt
"""

import argparse
import os
import sys
from typing import Any, Dict

from config import Config
from snake_duel.ai.agent import AgentState, DQNAgent
from snake_duel.ai.errors import ModelLoadError
from snake_duel.ai.network import read_weights
from snake_duel.ai.trainer import Trainer
from snake_duel.game import DuelGame
from snake_duel.utils.logger import LogLevel, get_log_path, get_logger, setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Snake Duel - Train a DQN agent to win two-snake battles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES
========

    python main.py --episodes 5000            Train headless
    python main.py --play                     Watch the trained agent
    python main.py --random --board 15        Watch random play on a 15x15 board
    python main.py --inspect models/snake_dqn.pt
        """
    )

    # Mode selection
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        '--play', action='store_true',
        help='Play mode: watch the trained agent without training'
    )
    mode_group.add_argument(
        '--random', action='store_true',
        help='Watch two snakes move at random'
    )
    mode_group.add_argument(
        '--inspect', type=str, metavar='MODEL_PATH',
        help='Inspect a model file and show its dimensions'
    )

    # Model options
    parser.add_argument(
        '--model', type=str, default=None,
        help='Path to save the model to (training) or load it from (--play)'
    )
    parser.add_argument(
        '--load', type=str, default=None,
        help='Existing model to continue training from'
    )

    # Training parameters
    parser.add_argument(
        '--episodes', type=int, default=None,
        help='Number of training episodes'
    )
    parser.add_argument(
        '--lr', type=float, default=None,
        help='Learning rate'
    )
    parser.add_argument(
        '--save-every', type=int, default=None,
        help='Save the model every N episodes'
    )
    parser.add_argument(
        '--log-every', type=int, default=None,
        help='Log training stats every N episodes'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )

    # Board / display
    parser.add_argument(
        '--board', type=int, default=None,
        help='Board width and height in cells'
    )
    parser.add_argument(
        '--cell', type=int, default=None,
        help='Cell size in pixels for playback'
    )
    parser.add_argument(
        '--log-level', type=str, default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging verbosity'
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Apply command line overrides to the default configuration."""
    overrides: Dict[str, Any] = {}
    if args.board is not None:
        overrides['BOARD_WIDTH'] = args.board
        overrides['BOARD_HEIGHT'] = args.board
    if args.cell is not None:
        overrides['CELL_SIZE'] = args.cell
    if args.episodes is not None:
        overrides['MAX_EPISODES'] = args.episodes
    if args.lr is not None:
        overrides['LEARNING_RATE'] = args.lr
    if args.save_every is not None:
        overrides['SAVE_EVERY'] = args.save_every
    if args.log_every is not None:
        overrides['LOG_EVERY'] = args.log_every
    if args.model is not None:
        overrides['MODEL_PATH'] = args.model
    if args.seed is not None:
        overrides['SEED'] = args.seed
    if args.log_level is not None:
        overrides['LOG_LEVEL'] = args.log_level
    return Config(**overrides)


def inspect_model(filepath: str) -> None:
    """Inspect a model file and display its dimensions."""
    try:
        weights = read_weights(filepath)
    except ModelLoadError as e:
        print(f"Cannot inspect {filepath}: {e}")
        return

    n_params = sum(
        t.numel() for t in (weights.w1, weights.b1, weights.w2, weights.b2, weights.w3, weights.b3)
    )

    print("\n" + "=" * 60)
    print(f"Model Inspection: {os.path.basename(filepath)}")
    print("=" * 60)
    print(f"   Format version: {weights.version}")
    print(f"   Layers:         {weights.input_size} -> {weights.hidden_size_1}"
          f" -> {weights.hidden_size_2} -> {weights.output_size}")
    print(f"   Learning rate:  {weights.learning_rate}")
    print(f"   Parameters:     {n_params:,}")

    state_path = filepath + '.state.json'
    if os.path.exists(state_path):
        try:
            state = AgentState.load_state(state_path)
        except ModelLoadError as e:
            print(f"   Agent state:    unreadable ({e})")
        else:
            print(f"   Epsilon:        {state.epsilon:.4f}")
            print(f"   Steps:          {state.step_count:,}")
    print("=" * 60)


def run_training(config: Config, args: argparse.Namespace) -> None:
    logger = get_logger('main')

    game = DuelGame(config, seed=config.SEED)
    agent = DQNAgent(config, seed=config.SEED)

    if args.load:
        try:
            agent.load(args.load)
        except ModelLoadError as e:
            logger.warning(f"Could not load model from {args.load}: {e}")
        else:
            state_path = args.load + '.state.json'
            if os.path.exists(state_path):
                try:
                    agent.set_state(AgentState.load_state(state_path))
                    logger.info(f"Resumed at step {agent.step_count}, epsilon {agent.epsilon:.4f}")
                except ModelLoadError as e:
                    logger.warning(f"Ignoring agent state: {e}")

    log_path = get_log_path()
    if log_path is not None:
        logger.info(f"Writing log to {log_path}")

    trainer = Trainer(game, agent, config)
    try:
        trainer.train(config.MAX_EPISODES)
    except KeyboardInterrupt:
        logger.warning("Training interrupted by user, saving model")
        trainer.save_checkpoint()


def run_playback(config: Config, args: argparse.Namespace) -> None:
    # pygame is only needed for playback
    from snake_duel.visualizer.renderer import GameRenderer

    logger = get_logger('main')
    game = DuelGame(config, seed=config.SEED)

    agent = None
    if args.play:
        agent = DQNAgent(config, seed=config.SEED)
        try:
            agent.load(config.MODEL_PATH)
        except ModelLoadError as e:
            logger.warning(f"Could not load model from {config.MODEL_PATH}: {e}")
            logger.warning("Playing with an untrained agent")
        agent.set_epsilon(0.0)

    GameRenderer(game, agent, config).run()


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Handle --inspect command (no config or pygame needed)
    if args.inspect:
        inspect_model(args.inspect)
        return 0

    try:
        config = build_config(args)
    except AssertionError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        log_dir=config.LOG_DIR,
        level=LogLevel.from_name(config.LOG_LEVEL),
        file_output=not (args.play or args.random),
        force=True,
    )

    if args.play or args.random:
        run_playback(config, args)
    else:
        run_training(config, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
