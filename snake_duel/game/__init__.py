"""
Game Module
===========

Two-snake grid simulation consumed by the AI package.

Classes:
    DuelGame   - Turn-based two-snake game
    GameState  - Observable board state (snakes, food, dimensions)
    StepResult - Rewards, deaths and outcome of one turn
    Snake      - A single snake body
    Direction  - Compass heading
    Position   - Board cell
"""

from .snake import Direction, Position, Snake, manhattan_distance
from .collision import (
    CollisionResult,
    CollisionType,
    check_all_collisions,
    check_wall_collision,
    is_danger_position,
)
from .duel import TIE, DuelGame, Food, GameState, StepResult

__all__ = [
    'Direction',
    'Position',
    'Snake',
    'manhattan_distance',
    'CollisionResult',
    'CollisionType',
    'check_all_collisions',
    'check_wall_collision',
    'is_danger_position',
    'TIE',
    'DuelGame',
    'Food',
    'GameState',
    'StepResult',
]
