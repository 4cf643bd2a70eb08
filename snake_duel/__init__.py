"""
Snake Duel - Source Package
===========================

Two snakes share one grid and learn to out-survive each other through
self-play Deep Q-Learning.

Modules:
    game/       - Two-snake grid simulation
    ai/         - Hand-written Q-network, replay buffer, agent and trainer
    visualizer/ - Pygame playback of trained agents
    utils/      - Logging helpers
"""

__version__ = "1.0.0"
