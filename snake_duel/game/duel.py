"""
Two-Snake Duel
==============

Turn-based simulation of two snakes competing for food on one grid.

Game Rules:
- Both snakes move simultaneously every turn
- Eating food grows the snake by one cell and respawns the food
- Hitting a wall, any snake body, or the opponent's head is fatal
- The game ends as soon as one snake dies; if both die it is a tie

Rewards (per snake, per turn):
- Death:                 REWARD_DEATH (replaces everything else)
- Survival:              REWARD_SURVIVAL
- Food:                 +REWARD_FOOD
- Opponent died:        +REWARD_OPPONENT_DEATH
"""

import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .collision import check_all_collisions
from .snake import Direction, Position, Snake

from config import Config

TIE = -1


@dataclass
class Food:
    position: Position = Position(0, 0)
    active: bool = False


@dataclass
class GameState:
    """
    Everything an observer can see about the board.

    Attributes:
        width, height: Board dimensions in cells
        snakes: The two competitors, indexed by snake id
        food: Current food item
        turn: Number of turns played
        game_over: True once at least one snake is dead
        winner: 0 or 1, or TIE (-1) while running or after a draw
    """
    width: int
    height: int
    snakes: List[Snake]
    food: Food = field(default_factory=Food)
    turn: int = 0
    game_over: bool = False
    winner: int = TIE

    def copy(self) -> 'GameState':
        """Deep copy of the observable state."""
        return GameState(
            width=self.width,
            height=self.height,
            snakes=[s.copy() for s in self.snakes],
            food=Food(self.food.position, self.food.active),
            turn=self.turn,
            game_over=self.game_over,
            winner=self.winner,
        )


@dataclass
class StepResult:
    """Outcome of one turn."""
    rewards: Tuple[float, float] = (0.0, 0.0)
    ate_food: Tuple[bool, bool] = (False, False)
    died: Tuple[bool, bool] = (False, False)
    game_over: bool = False
    winner: int = TIE


class DuelGame:
    """
    Game logic for the snake duel.

    Snake 0 starts on the left facing right, snake 1 on the right facing left.

    Example:
        >>> game = DuelGame(Config(), seed=42)
        >>> result = game.step((Direction.RIGHT, Direction.LEFT))
        >>> result.game_over
        False
    """

    def __init__(self, config: Optional[Config] = None, seed: Optional[int] = None):
        """
        Initialize the game.

        Args:
            config: Configuration object (uses default if None)
            seed: Seed for food placement
        """
        self.config = config or Config()
        self._rng = random.Random(seed)
        self.state = GameState(
            width=self.config.BOARD_WIDTH,
            height=self.config.BOARD_HEIGHT,
            snakes=[],
        )
        self.reset()

    @property
    def width(self) -> int:
        return self.state.width

    @property
    def height(self) -> int:
        return self.state.height

    def reset(self) -> GameState:
        """Place both snakes at their start cells and spawn food."""
        length = self.config.INITIAL_SNAKE_LENGTH
        mid = self.height // 2
        self.state.snakes = [
            Snake(0, Position(3, mid), Direction.RIGHT, length),
            Snake(1, Position(self.width - 4, mid), Direction.LEFT, length),
        ]
        self._spawn_food()
        self.state.turn = 0
        self.state.game_over = False
        self.state.winner = TIE
        return self.state

    def seed(self, seed: int) -> None:
        self._rng.seed(seed)

    def _spawn_food(self) -> None:
        """Place food on a uniformly chosen empty cell, or deactivate it."""
        occupied = set()
        for snake in self.state.snakes:
            occupied.update(snake.body)

        empty = [
            Position(x, y)
            for x in range(self.width)
            for y in range(self.height)
            if Position(x, y) not in occupied
        ]

        if empty:
            self.state.food = Food(empty[self._rng.randrange(len(empty))], True)
        else:
            self.state.food = Food(self.state.food.position, False)

    def step(self, actions: Sequence[Direction]) -> StepResult:
        """
        Advance the game by one turn.

        Args:
            actions: Requested absolute direction for snake 0 and snake 1

        Returns:
            StepResult for this turn
        """
        state = self.state
        if state.game_over:
            return StepResult(game_over=True, winner=state.winner)

        state.turn += 1

        # Decide who eats before anyone moves
        will_eat = [False, False]
        for i, snake in enumerate(state.snakes):
            if snake.alive and state.food.active:
                will_eat[i] = snake.next_head(actions[i]) == state.food.position

        for i, snake in enumerate(state.snakes):
            if snake.alive:
                snake.move(actions[i], grow=will_eat[i])

        for i, ate in enumerate(will_eat):
            if ate:
                state.snakes[i].score += 1

        if any(will_eat):
            self._spawn_food()

        collisions = check_all_collisions(state.snakes, state.width, state.height)
        died = [False, False]
        for i in range(2):
            if collisions[i]:
                state.snakes[i].kill()
                died[i] = True

        rewards = self._calculate_rewards(will_eat, died)

        alive0 = state.snakes[0].alive
        alive1 = state.snakes[1].alive
        if not alive0 or not alive1:
            state.game_over = True
            if not alive0 and not alive1:
                state.winner = TIE
            elif not alive0:
                state.winner = 1
            else:
                state.winner = 0

        return StepResult(
            rewards=rewards,
            ate_food=(will_eat[0], will_eat[1]),
            died=(died[0], died[1]),
            game_over=state.game_over,
            winner=state.winner,
        )

    def _calculate_rewards(self, ate_food: List[bool], died: List[bool]) -> Tuple[float, float]:
        rewards = [0.0, 0.0]
        for i in range(2):
            if died[i]:
                rewards[i] = self.config.REWARD_DEATH
                continue
            rewards[i] = self.config.REWARD_SURVIVAL
            if ate_food[i]:
                rewards[i] += self.config.REWARD_FOOD
            if died[1 - i]:
                rewards[i] += self.config.REWARD_OPPONENT_DEATH
        return rewards[0], rewards[1]

    def clone(self) -> 'DuelGame':
        """Deep copy, including the food RNG state."""
        twin = DuelGame.__new__(DuelGame)
        twin.config = self.config
        twin._rng = random.Random()
        twin._rng.setstate(self._rng.getstate())
        twin.state = self.state.copy()
        return twin
