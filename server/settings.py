import os
from dataclasses import dataclass, field

ARENA_WIDTH = 800
ARENA_HEIGHT = 800
LINE_WIDTH = 10

DEFAULT_SPEED = 2
MIN_SPEED = 1
MAX_SPEED = 5

TICK_INTERVAL = 1.0 / 60.0
BROADCAST_INTERVAL = 1.0 / 30.0
COUNTDOWN_DURATION = 10

MIN_PLAYERS = 2
MAX_PLAYERS = 4

PLAYER_COLORS = ("red", "blue", "green", "purple")

START_MARGIN = 150

LOBBY = "lobby"
COUNTDOWN = "countdown"
PLAYING = "playing"
GAME_OVER = "gameOver"

# Client to server
JOIN_GAME_EVENT = "joinGame"
READY_EVENT = "ready"
TURN_EVENT = "turn"
RESTART_EVENT = "restart"
SET_SPEED_EVENT = "setSpeed"

# Server to client
JOINED_EVENT = "joined"
GAME_STATE_EVENT = "gameState"
COUNTDOWN_EVENT = "countdown"
GAME_OVER_EVENT = "gameOver"
SPEED_CHANGED_EVENT = "speedChanged"
ERROR_EVENT = "error"


class ConfigError(ValueError):
    pass


def _env_number(environ, key, default, cast):
    raw = (environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def _env_rate(environ, key, default_interval):
    rate = _env_number(environ, key, None, float)
    if rate is None:
        return default_interval
    if rate <= 0:
        raise ConfigError(f"{key} must be positive")
    return 1.0 / rate


@dataclass(frozen=True)
class StartSlot:
    x: float
    y: float
    direction: str


@dataclass(frozen=True)
class GameConfig:
    """Arena, timing and roster settings shared by every room.

    Built once at startup and never mutated; rooms hold a reference.
    Intervals are in seconds.
    """

    arena_width: int = ARENA_WIDTH
    arena_height: int = ARENA_HEIGHT
    line_width: float = LINE_WIDTH
    default_speed: float = DEFAULT_SPEED
    min_speed: float = MIN_SPEED
    max_speed: float = MAX_SPEED
    tick_interval: float = TICK_INTERVAL
    broadcast_interval: float = BROADCAST_INTERVAL
    countdown_duration: int = COUNTDOWN_DURATION
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    player_colors: tuple = field(default=PLAYER_COLORS)

    def __post_init__(self):
        if self.arena_width <= 0 or self.arena_height <= 0:
            raise ConfigError("Arena dimensions must be positive")
        if self.line_width <= 0:
            raise ConfigError("Line width must be positive")
        if self.min_speed <= 0 or self.min_speed > self.max_speed:
            raise ConfigError("Speed bounds must satisfy 0 < min_speed <= max_speed")
        if not self.min_speed <= self.default_speed <= self.max_speed:
            raise ConfigError("Default speed must lie within the speed bounds")
        if self.tick_interval <= 0 or self.broadcast_interval <= 0:
            raise ConfigError("Tick and broadcast intervals must be positive")
        if self.countdown_duration <= 0:
            raise ConfigError("Countdown duration must be positive")
        if not 0 < self.min_players <= self.max_players:
            raise ConfigError("Player bounds must satisfy 0 < min_players <= max_players")
        if self.max_players > len(self.player_colors):
            raise ConfigError("Not enough player colors for max_players")
        if self.max_players > len(self.start_positions()):
            raise ConfigError("Not enough start positions for max_players")

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        return cls(
            arena_width=_env_number(environ, "TRON_ARENA_WIDTH", ARENA_WIDTH, int),
            arena_height=_env_number(environ, "TRON_ARENA_HEIGHT", ARENA_HEIGHT, int),
            line_width=_env_number(environ, "TRON_LINE_WIDTH", LINE_WIDTH, float),
            default_speed=_env_number(environ, "TRON_DEFAULT_SPEED", DEFAULT_SPEED, float),
            min_speed=_env_number(environ, "TRON_MIN_SPEED", MIN_SPEED, float),
            max_speed=_env_number(environ, "TRON_MAX_SPEED", MAX_SPEED, float),
            tick_interval=_env_rate(environ, "TRON_TICK_RATE", TICK_INTERVAL),
            broadcast_interval=_env_rate(environ, "TRON_BROADCAST_RATE", BROADCAST_INTERVAL),
            countdown_duration=_env_number(environ, "TRON_COUNTDOWN", COUNTDOWN_DURATION, int),
            min_players=_env_number(environ, "TRON_MIN_PLAYERS", MIN_PLAYERS, int),
            max_players=_env_number(environ, "TRON_MAX_PLAYERS", MAX_PLAYERS, int),
        )

    def start_positions(self):
        width = self.arena_width
        height = self.arena_height
        return [
            StartSlot(float(START_MARGIN), height / 2, "RIGHT"),
            StartSlot(float(width - START_MARGIN), height / 2, "LEFT"),
            StartSlot(width / 2, float(START_MARGIN), "DOWN"),
            StartSlot(width / 2, float(height - START_MARGIN), "UP"),
        ]

    def to_client(self):
        return {
            "gameWidth": self.arena_width,
            "gameHeight": self.arena_height,
            "lineWidth": self.line_width,
            "defaultSpeed": self.default_speed,
            "minSpeed": self.min_speed,
            "maxSpeed": self.max_speed,
            "tickRate": self.tick_interval * 1000.0,
            "broadcastRate": self.broadcast_interval * 1000.0,
            "countdownDuration": self.countdown_duration,
            "minPlayers": self.min_players,
            "maxPlayers": self.max_players,
            "playerColors": list(self.player_colors),
        }
