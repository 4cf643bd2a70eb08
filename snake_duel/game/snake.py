"""
Snake Primitives
================

Grid coordinates, compass directions and the snake body itself.

Coordinates:
    x grows to the right, y grows downward, (0, 0) is the top-left cell.
    A snake's body is stored head-first: body[0] is always the head.
"""

from enum import IntEnum
from typing import List, NamedTuple


class Direction(IntEnum):
    """Absolute movement direction. Values double as one-hot feature offsets."""
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3

    def opposite(self) -> 'Direction':
        return _OPPOSITE[self]

    def turn_left(self) -> 'Direction':
        """Direction after a 90 degree counter-clockwise turn."""
        return _TURN_LEFT[self]

    def turn_right(self) -> 'Direction':
        """Direction after a 90 degree clockwise turn."""
        return _TURN_RIGHT[self]


_OPPOSITE = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

_TURN_LEFT = {
    Direction.UP: Direction.LEFT,
    Direction.LEFT: Direction.DOWN,
    Direction.DOWN: Direction.RIGHT,
    Direction.RIGHT: Direction.UP,
}

_TURN_RIGHT = {
    Direction.UP: Direction.RIGHT,
    Direction.RIGHT: Direction.DOWN,
    Direction.DOWN: Direction.LEFT,
    Direction.LEFT: Direction.UP,
}

# (dx, dy) per direction
DIRECTION_VECTORS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


class Position(NamedTuple):
    """A cell on the board."""
    x: int
    y: int

    def add(self, dx: int, dy: int) -> 'Position':
        return Position(self.x + dx, self.y + dy)

    def step(self, direction: Direction) -> 'Position':
        """The neighbouring cell one step in `direction`."""
        dx, dy = DIRECTION_VECTORS[direction]
        return Position(self.x + dx, self.y + dy)


def manhattan_distance(p1: Position, p2: Position) -> int:
    """Manhattan (taxicab) distance between two cells."""
    return abs(p1.x - p2.x) + abs(p1.y - p2.y)


class Snake:
    """
    One competitor on the board.

    Attributes:
        snake_id: 0 or 1
        body: Cells occupied by the snake, head first
        direction: Current heading
        alive: False once the snake has crashed
        score: Number of food items eaten
        grew: Whether the last move extended the body
    """

    def __init__(self, snake_id: int, head: Position, direction: Direction, length: int = 3):
        """
        Create a snake whose body trails straight behind the head.

        Args:
            snake_id: Owner index (0 or 1)
            head: Head cell
            direction: Initial heading
            length: Number of body cells including the head
        """
        if length < 1:
            raise ValueError(f"Snake length must be at least 1, got {length}")

        self.snake_id = snake_id
        self.body: List[Position] = self._build_body(Position(*head), direction, length)
        self.direction = direction
        self.alive = True
        self.score = 0
        self.grew = False

    @staticmethod
    def _build_body(head: Position, direction: Direction, length: int) -> List[Position]:
        # Body extends away from the heading
        dx, dy = DIRECTION_VECTORS[direction.opposite()]
        return [head.add(dx * i, dy * i) for i in range(length)]

    @property
    def head(self) -> Position:
        return self.body[0]

    @property
    def length(self) -> int:
        return len(self.body)

    def next_head(self, direction: Direction) -> Position:
        """Where the head would be after one move in `direction`."""
        return self.head.step(direction)

    def move(self, direction: Direction, grow: bool = False) -> None:
        """
        Advance one cell.

        A request to reverse onto the neck is ignored and the snake keeps
        its current heading instead.

        Args:
            direction: Requested heading
            grow: Keep the tail (the snake ate this turn)
        """
        if not self.alive:
            return

        if direction == self.direction.opposite():
            direction = self.direction

        new_head = self.next_head(direction)
        self.direction = direction
        self.grew = grow

        self.body.insert(0, new_head)
        if not grow:
            self.body.pop()

    def contains(self, pos: Position, exclude_head: bool = False) -> bool:
        """Check whether `pos` is occupied by this snake."""
        start = 1 if exclude_head else 0
        return pos in self.body[start:]

    def kill(self) -> None:
        self.alive = False

    def reset(self, head: Position, direction: Direction, length: int = 3) -> None:
        """Respawn in place with a fresh body and zero score."""
        self.body = self._build_body(Position(*head), direction, length)
        self.direction = direction
        self.alive = True
        self.score = 0
        self.grew = False

    def copy(self) -> 'Snake':
        """Deep copy (body list is not shared)."""
        clone = Snake.__new__(Snake)
        clone.snake_id = self.snake_id
        clone.body = list(self.body)
        clone.direction = self.direction
        clone.alive = self.alive
        clone.score = self.score
        clone.grew = self.grew
        return clone

    def __repr__(self) -> str:
        status = "alive" if self.alive else "dead"
        return f"Snake(id={self.snake_id}, head={tuple(self.head)}, len={self.length}, {status})"
