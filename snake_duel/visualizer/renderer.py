"""
Duel Renderer
=============

Pygame window for watching two snakes play, either driven by a trained
agent (greedy actions) or by uniformly random moves.

Controls:
    Space       Pause / resume
    Up / =      Faster
    Down / -    Slower
    R           Restart the current game
    Q / Esc     Quit
"""

import random
from typing import Optional, Tuple

import pygame

from snake_duel.ai.agent import DQNAgent
from snake_duel.ai.state import NUM_ACTIONS, Action, action_to_direction, encode_state
from snake_duel.game import TIE, DuelGame, Position, Snake
from snake_duel.utils.logger import get_logger

from config import Config

_logger = get_logger(__name__)

Color = Tuple[int, int, int]

COLORS = {
    'background': (20, 20, 20),
    'grid': (40, 40, 40),
    'snake0': (76, 175, 80),       # Green
    'snake0_head': (129, 199, 132),
    'snake1': (33, 150, 243),      # Blue
    'snake1_head': (100, 181, 246),
    'food': (244, 67, 54),         # Red
    'dead': (128, 128, 128),
    'text': (255, 255, 255),
}

SNAKE_NAMES = ('Green', 'Blue')

# Frames per move for speed levels 1..5
SPEED_TICKS = (30, 15, 10, 5, 2)
DEFAULT_SPEED = 3

# Frames to hold the final board before restarting (~2 s at 60 FPS)
GAME_OVER_DELAY = 120

OFFSET_X = 20
OFFSET_Y = 60


class GameRenderer:
    """
    Plays and draws duels until the window is closed.

    Game logic runs on a frame counter: every `ticks_per_step` frames the
    game advances one turn. After a game ends the board is held for
    GAME_OVER_DELAY frames, the result is counted and a new game starts.

    Attributes:
        speed: Speed level 1-5
        paused: Whether the game is frozen
        games_played, wins, ties: Running results
    """

    def __init__(self, game: DuelGame, agent: Optional[DQNAgent] = None, config: Optional[Config] = None):
        """
        Args:
            game: Game to play
            agent: Trained agent; None means random moves
            config: Configuration object
        """
        self.game = game
        self.agent = agent
        self.config = config or Config()

        self.cell_size = self.config.CELL_SIZE
        self.board_width = game.width * self.cell_size
        self.board_height = game.height * self.cell_size
        self.screen_width = self.board_width + 2 * OFFSET_X
        self.screen_height = self.board_height + 100

        self.speed = DEFAULT_SPEED
        self.ticks_per_step = SPEED_TICKS[self.speed - 1]
        self.tick_count = 0
        self.paused = False

        self.games_played = 0
        self.wins = [0, 0]
        self.ties = 0

        self.game_over_ticks = 0
        self._recorded = False

        self._rng = random.Random()
        self._font: Optional[pygame.font.Font] = None

    # -------------------------------------------------------------------------
    # Logic
    # -------------------------------------------------------------------------

    def change_speed(self, delta: int) -> None:
        self.speed = max(1, min(len(SPEED_TICKS), self.speed + delta))
        self.ticks_per_step = SPEED_TICKS[self.speed - 1]

    def choose_action(self, snake_id: int) -> Action:
        """Greedy action from the agent, or a random one without an agent."""
        if self.agent is None:
            return Action(self._rng.randrange(NUM_ACTIONS))
        return self.agent.select_action_greedy(encode_state(self.game.state, snake_id))

    def update(self) -> None:
        """Advance one frame."""
        if self.paused:
            return

        state = self.game.state
        if state.game_over:
            if not self._recorded:
                self._record_result(state.winner)
            self.game_over_ticks += 1
            if self.game_over_ticks >= GAME_OVER_DELAY:
                self.restart()
            return

        self.tick_count += 1
        if self.tick_count < self.ticks_per_step:
            return
        self.tick_count = 0

        directions = [
            action_to_direction(state.snakes[i].direction, self.choose_action(i))
            for i in range(2)
        ]
        self.game.step(directions)

    def _record_result(self, winner: int) -> None:
        self.games_played += 1
        if winner == TIE:
            self.ties += 1
        else:
            self.wins[winner] += 1
        self._recorded = True
        _logger.debug(f"Game {self.games_played} finished, winner={winner}")

    def restart(self) -> None:
        self.game.reset()
        self.game_over_ticks = 0
        self.tick_count = 0
        self._recorded = False

    def handle_key(self, key: int) -> bool:
        """
        React to a key press.

        Returns:
            False if the key asks to quit
        """
        if key in (pygame.K_q, pygame.K_ESCAPE):
            return False
        if key == pygame.K_SPACE:
            self.paused = not self.paused
        elif key in (pygame.K_UP, pygame.K_EQUALS, pygame.K_PLUS):
            self.change_speed(1)
        elif key in (pygame.K_DOWN, pygame.K_MINUS):
            self.change_speed(-1)
        elif key == pygame.K_r:
            self.restart()
        return True

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def draw(self, surface: pygame.Surface) -> None:
        surface.fill(COLORS['background'])
        self._draw_grid(surface)
        self._draw_food(surface)
        self._draw_snake(surface, self.game.state.snakes[0], COLORS['snake0'], COLORS['snake0_head'])
        self._draw_snake(surface, self.game.state.snakes[1], COLORS['snake1'], COLORS['snake1_head'])
        self._draw_ui(surface)

    def _draw_grid(self, surface: pygame.Surface) -> None:
        top, bottom = OFFSET_Y, OFFSET_Y + self.board_height
        left, right = OFFSET_X, OFFSET_X + self.board_width
        for x in range(self.game.width + 1):
            px = left + x * self.cell_size
            pygame.draw.line(surface, COLORS['grid'], (px, top), (px, bottom))
        for y in range(self.game.height + 1):
            py = top + y * self.cell_size
            pygame.draw.line(surface, COLORS['grid'], (left, py), (right, py))

    def _draw_cell(self, surface: pygame.Surface, pos: Position, color: Color, padding: int) -> None:
        rect = pygame.Rect(
            OFFSET_X + pos.x * self.cell_size + padding,
            OFFSET_Y + pos.y * self.cell_size + padding,
            self.cell_size - 2 * padding,
            self.cell_size - 2 * padding,
        )
        pygame.draw.rect(surface, color, rect)

    def _draw_food(self, surface: pygame.Surface) -> None:
        food = self.game.state.food
        if food.active:
            self._draw_cell(surface, food.position, COLORS['food'], 2)

    def _draw_snake(self, surface: pygame.Surface, snake: Snake, body: Color, head: Color) -> None:
        if not snake.alive:
            body = head = COLORS['dead']
        # Tail first so the head is drawn on top
        for pos in reversed(snake.body[1:]):
            self._draw_cell(surface, pos, body, 1)
        if snake.body:
            self._draw_cell(surface, snake.head, head, 1)

    def _text(self, surface: pygame.Surface, text: str, x: int, y: int) -> None:
        if self._font is None:
            self._font = pygame.font.Font(None, 20)
        surface.blit(self._font.render(text, True, COLORS['text']), (x, y))

    def _draw_ui(self, surface: pygame.Surface) -> None:
        state = self.game.state

        title = "Snake Duel" + (" [PAUSED]" if self.paused else "")
        self._text(surface, title, 10, 10)

        for i, snake in enumerate(state.snakes):
            info = f"{SNAKE_NAMES[i]}: Length {snake.length}, Score {snake.score}"
            if not snake.alive:
                info += " [DEAD]"
            self._text(surface, info, 10 + i * self.screen_width // 2, 32)

        if state.game_over:
            if state.winner == TIE:
                msg = "TIE!"
            else:
                msg = f"{SNAKE_NAMES[state.winner].upper()} WINS!"
            self._text(surface, msg, self.screen_width // 2 - len(msg) * 4, self.screen_height // 2)

        stats_y = OFFSET_Y + self.board_height + 8
        self._text(
            surface,
            f"Games: {self.games_played}   Green: {self.wins[0]}   Blue: {self.wins[1]}"
            f"   Ties: {self.ties}   Turn: {state.turn}   Speed: {self.speed}",
            10, stats_y,
        )
        self._text(surface, "Space: Pause   Up/Down: Speed   R: Reset   Q: Quit", 10, stats_y + 18)

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    def run(self) -> None:
        """Open the window and play until the user quits."""
        pygame.init()
        screen = pygame.display.set_mode((self.screen_width, self.screen_height))
        pygame.display.set_caption("Snake Duel")
        clock = pygame.time.Clock()

        mode = "agent" if self.agent is not None else "random"
        _logger.info(f"Playback started ({mode} moves, {self.game.width}x{self.game.height} board)")

        running = True
        try:
            while running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        running = False
                    elif event.type == pygame.KEYDOWN:
                        running = self.handle_key(event.key) and running

                self.update()
                self.draw(screen)
                pygame.display.flip()
                clock.tick(self.config.FPS)
        finally:
            pygame.quit()

        _logger.info(
            f"Playback finished: {self.games_played} games, "
            f"wins {self.wins[0]}/{self.wins[1]}, ties {self.ties}"
        )
