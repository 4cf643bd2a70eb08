"""
Visualizer Module
=================

Pygame playback of duels.

Classes:
    GameRenderer - Draws the board and drives agent or random play
"""

from .renderer import GameRenderer

__all__ = ['GameRenderer']
