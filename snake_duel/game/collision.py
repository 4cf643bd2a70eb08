"""
Collision Detection
===================

Pure functions over snakes and board bounds. The duel game calls
check_all_collisions() after both snakes have moved; the state encoder
uses is_danger_position() to look one or two moves ahead.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Sequence, Tuple

from .snake import Position, Snake


class CollisionType(Enum):
    WALL = auto()
    SELF = auto()
    OTHER_SNAKE = auto()
    HEAD_TO_HEAD = auto()


@dataclass(frozen=True)
class CollisionResult:
    """One collision suffered by a snake."""
    type: CollisionType
    position: Position
    other_id: int = -1  # Snake that was hit, for OTHER_SNAKE / HEAD_TO_HEAD


def check_wall_collision(pos: Position, width: int, height: int) -> bool:
    """True if `pos` lies outside the board."""
    return pos.x < 0 or pos.x >= width or pos.y < 0 or pos.y >= height


def check_self_collision(snake: Snake) -> bool:
    """True if the head overlaps the rest of the body. Call after moving."""
    if not snake.alive or snake.length < 2:
        return False
    return snake.contains(snake.head, exclude_head=True)


def check_snake_collision(snake: Snake, other: Snake) -> bool:
    """True if `snake`'s head lands anywhere on `other`'s body."""
    if not snake.alive or not other.alive:
        return False
    return other.contains(snake.head)


def check_head_to_head(snake: Snake, other: Snake) -> bool:
    if not snake.alive or not other.alive:
        return False
    return snake.head == other.head


def check_food_collision(snake: Snake, food_pos: Position) -> bool:
    if not snake.alive:
        return False
    return snake.head == food_pos


def check_all_collisions(
    snakes: Sequence[Snake],
    width: int,
    height: int
) -> Tuple[List[CollisionResult], List[CollisionResult]]:
    """
    Run every collision check for both snakes.

    Head-to-head takes precedence over body hits between the two snakes.

    Returns:
        Pair of collision lists, one per snake (empty = survived)
    """
    results: Tuple[List[CollisionResult], List[CollisionResult]] = ([], [])

    for i, snake in enumerate(snakes):
        if not snake.alive:
            continue
        head = snake.head
        if check_wall_collision(head, width, height):
            results[i].append(CollisionResult(CollisionType.WALL, head))
        if check_self_collision(snake):
            results[i].append(CollisionResult(CollisionType.SELF, head))

    s0, s1 = snakes
    if s0.alive and s1.alive:
        if check_head_to_head(s0, s1):
            results[0].append(CollisionResult(CollisionType.HEAD_TO_HEAD, s0.head, other_id=1))
            results[1].append(CollisionResult(CollisionType.HEAD_TO_HEAD, s1.head, other_id=0))
        else:
            if check_snake_collision(s0, s1):
                results[0].append(CollisionResult(CollisionType.OTHER_SNAKE, s0.head, other_id=1))
            if check_snake_collision(s1, s0):
                results[1].append(CollisionResult(CollisionType.OTHER_SNAKE, s1.head, other_id=0))

    return results


def is_danger_position(
    pos: Position,
    snake_id: int,
    snakes: Sequence[Snake],
    width: int,
    height: int
) -> bool:
    """
    Would moving `snake_id`'s head onto `pos` be fatal?

    Dangerous cells are off-board cells, the snake's own body (excluding its
    current head) and any cell of a living opponent.
    """
    if check_wall_collision(pos, width, height):
        return True

    if snakes[snake_id].contains(pos, exclude_head=True):
        return True

    other = snakes[1 - snake_id]
    return other.alive and other.contains(pos)
