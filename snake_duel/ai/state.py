"""
State Encoding
==============

Turns a GameState into the fixed-length feature vector the Q-network reads.
Each snake sees the board from its own perspective, so the same network can
drive both competitors.

Feature layout (22 values):
    [0-2]   Danger one step ahead: straight, left, right
    [3-6]   Current heading, one-hot (UP, DOWN, LEFT, RIGHT)
    [7-10]  Food relative to head: up, down, left, right
    [11-14] Opponent head relative to head: up, down, left, right
    [15]    1 - manhattan(head, opponent head) / (width + height)
    [16]    1 - manhattan(head, nearest opponent cell) / (width + height)
    [17]    Own length / (width * height // 2)
    [18]    Opponent length, same scale
    [19-21] Danger within two steps: straight, left, right

A dead snake always encodes to 22 zeros.
"""

from enum import IntEnum

import numpy as np

from snake_duel.game import Direction, GameState, Position, is_danger_position, manhattan_distance


class Action(IntEnum):
    """Relative moves. Values double as Q-network output indices."""
    STRAIGHT = 0
    LEFT = 1
    RIGHT = 2


NUM_ACTIONS = len(Action)
STATE_SIZE = 22


def action_to_direction(direction: Direction, action: Action) -> Direction:
    """Compass heading that results from taking `action` while facing `direction`."""
    if action == Action.LEFT:
        return direction.turn_left()
    if action == Action.RIGHT:
        return direction.turn_right()
    return direction


def _danger(state: GameState, snake_id: int, pos: Position) -> bool:
    return is_danger_position(pos, snake_id, state.snakes, state.width, state.height)


def encode_state(state: GameState, snake_id: int) -> np.ndarray:
    """
    Encode the board from the point of view of snake `snake_id`.

    Args:
        state: Current game state
        snake_id: 0 or 1

    Returns:
        float64 array of length STATE_SIZE
    """
    features = np.zeros(STATE_SIZE, dtype=np.float64)

    snake = state.snakes[snake_id]
    other = state.snakes[1 - snake_id]

    if not snake.alive:
        return features

    head = snake.head
    heading = snake.direction
    max_dist = float(state.width + state.height)
    max_length = float(state.width * state.height // 2)

    # One step ahead for each relative action
    turned = [action_to_direction(heading, action) for action in Action]
    first_cells = [head.step(d) for d in turned]
    first_danger = [_danger(state, snake_id, cell) for cell in first_cells]
    features[0:3] = first_danger

    features[3 + int(heading)] = 1.0

    if state.food.active:
        food = state.food.position
        features[7] = food.y < head.y
        features[8] = food.y > head.y
        features[9] = food.x < head.x
        features[10] = food.x > head.x

    if other.alive:
        opp_head = other.head
        features[11] = opp_head.y < head.y
        features[12] = opp_head.y > head.y
        features[13] = opp_head.x < head.x
        features[14] = opp_head.x > head.x

        features[15] = 1.0 - manhattan_distance(head, opp_head) / max_dist

        nearest = min(manhattan_distance(head, cell) for cell in other.body)
        features[16] = 1.0 - min(nearest, max_dist) / max_dist

        features[18] = other.length / max_length

    features[17] = snake.length / max_length

    # Two steps ahead: keep going in the heading the first step produced
    for i, (cell, direction) in enumerate(zip(first_cells, turned)):
        if first_danger[i]:
            features[19 + i] = 1.0
        else:
            features[19 + i] = _danger(state, snake_id, cell.step(direction))

    return features


def calculate_shaping_reward(
    prev_state: GameState,
    new_state: GameState,
    snake_id: int,
    bonus: float = 0.1
) -> float:
    """
    Small reward for moving toward the food, penalty for moving away.

    Returns 0 when the snake is dead in either snapshot or food is inactive
    in either snapshot.
    """
    prev_snake = prev_state.snakes[snake_id]
    new_snake = new_state.snakes[snake_id]

    if not prev_snake.alive or not new_snake.alive:
        return 0.0
    if not prev_state.food.active or not new_state.food.active:
        return 0.0

    prev_dist = manhattan_distance(prev_snake.head, prev_state.food.position)
    new_dist = manhattan_distance(new_snake.head, new_state.food.position)

    if new_dist < prev_dist:
        return bonus
    if new_dist > prev_dist:
        return -bonus
    return 0.0
