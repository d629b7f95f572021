import logging
import threading
import time

from avatar import Avatar
from collision import CollisionDetector
from commands import Join, Leave, Restart, SetReady, SetSpeed, Turn
from scores import NullScoreTracker, ScoreTracker
from settings import (
    COUNTDOWN,
    COUNTDOWN_EVENT,
    GAME_OVER,
    GAME_OVER_EVENT,
    GAME_STATE_EVENT,
    LOBBY,
    PLAYING,
    SPEED_CHANGED_EVENT,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 16
NO_WINNER = "No one"
ROOM_FULL = "Game room is full"
NO_COLORS = "No colors available"

TRANSITIONS = {
    LOBBY: {COUNTDOWN},
    COUNTDOWN: {PLAYING, LOBBY},
    PLAYING: {GAME_OVER},
    GAME_OVER: {LOBBY},
}


class InvalidTransition(RuntimeError):
    pass


def _safe_name(raw_name, fallback):
    name = raw_name.strip() if isinstance(raw_name, str) else ""
    if not name:
        return fallback
    return name[:MAX_NAME_LENGTH]


def _valid_speed(value, config):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not config.min_speed <= value <= config.max_speed:
        return None
    return value


class GameRoom:
    """One arena: roster, lifecycle, countdown and simulation timers.

    All mutation happens under ``self.lock``, whether it comes from a client
    intent or from one of the two background loops. Outbound events are
    queued while the lock is held and handed to ``broadcast`` after it is
    released.

    ``scheduler`` needs ``start_background_task(target, *args)`` and
    ``sleep(seconds)``; in production it is the ``SocketIO`` instance.
    """

    def __init__(self, room_id, config, scheduler, broadcast=None, scores=None, clock=time.monotonic):
        self.room_id = room_id
        self.config = config
        self.avatars = {}
        self.state = LOBBY
        self.countdown = config.countdown_duration
        self.speed = config.default_speed
        self.scores = scores if scores is not None else ScoreTracker()
        self.detector = CollisionDetector(config)
        self.start_positions = config.start_positions()
        self.lock = threading.Lock()
        # Held across outbox swap and send so events leave in queue order.
        self._send_lock = threading.Lock()
        self.closed = False

        self._scheduler = scheduler
        self._broadcast = broadcast or (lambda event, payload: None)
        self._clock = clock
        self._outbox = []
        self._participants = []
        self._countdown_generation = 0
        self._loop_generation = 0
        self._last_broadcast = 0.0

    # Intents

    def handle(self, command):
        with self.lock:
            if self.closed:
                result = None
            else:
                result = self._apply(command)
        self._flush()
        return result

    def _apply(self, command):
        if isinstance(command, Join):
            return self._join(command.sid, command.name)
        if isinstance(command, Leave):
            return self._leave(command.sid)
        if isinstance(command, SetReady):
            return self._set_ready(command.sid, command.ready)
        if isinstance(command, Turn):
            return self._turn(command.sid, command.direction)
        if isinstance(command, SetSpeed):
            return self._set_speed(command.sid, command.speed)
        if isinstance(command, Restart):
            return self._restart(command.sid)
        return None

    def _join(self, sid, name):
        existing = self.avatars.get(sid)
        if existing:
            return existing, None
        if len(self.avatars) >= self.config.max_players:
            return None, ROOM_FULL
        slot = self._free_slot()
        if slot is None:
            return None, NO_COLORS
        start = self.start_positions[slot]
        avatar = Avatar(
            id=sid,
            name=_safe_name(name, self._default_name()),
            color=self.config.player_colors[slot],
            slot=slot,
            x=start.x,
            y=start.y,
            direction=start.direction,
        )
        # Late joiners watch until the next restart.
        if self.state in (PLAYING, GAME_OVER):
            avatar.alive = False
        self.avatars[sid] = avatar
        self._score("register_player", avatar.name)
        logger.info("%s joined room %s as %s", avatar.name, self.room_id, avatar.color)
        return avatar, None

    def _default_name(self):
        taken = {avatar.name for avatar in self.avatars.values()}
        number = len(self.avatars) + 1
        while f"Player {number}" in taken:
            number += 1
        return f"Player {number}"

    def _free_slot(self):
        used = {avatar.slot for avatar in self.avatars.values()}
        for slot in range(self.config.max_players):
            if slot not in used:
                return slot
        return None

    def _leave(self, sid):
        avatar = self.avatars.pop(sid, None)
        if avatar is None:
            return False
        logger.info("%s left room %s", avatar.name, self.room_id)
        if self.state == COUNTDOWN and len(self.avatars) < self.config.min_players:
            self._abort_countdown()
        elif self.state == PLAYING and self._end_if_decided():
            return True
        if self.avatars:
            self._queue_state()
        return True

    def _set_ready(self, sid, ready):
        avatar = self.avatars.get(sid)
        if not avatar or self.state not in (LOBBY, COUNTDOWN):
            return
        avatar.ready = bool(ready)
        if self.state == LOBBY and self._ready_count() >= self.config.min_players:
            self._start_countdown()
        self._queue_state()

    def _ready_count(self):
        return sum(1 for avatar in self.avatars.values() if avatar.ready)

    def _turn(self, sid, direction):
        avatar = self.avatars.get(sid)
        if not avatar or not avatar.alive or self.state != PLAYING:
            return
        avatar.turn(direction)

    def _set_speed(self, sid, value):
        if sid not in self.avatars or self.state != LOBBY:
            return
        speed = _valid_speed(value, self.config)
        if speed is None:
            return
        self.speed = speed
        self._queue(SPEED_CHANGED_EVENT, speed)

    def _restart(self, sid):
        if sid not in self.avatars or self.state != GAME_OVER:
            return
        self._transition(LOBBY)
        self.countdown = self.config.countdown_duration
        for avatar in self.avatars.values():
            avatar.reset(self.start_positions[avatar.slot])
        self._queue_state()

    # State machine

    def _transition(self, new_state):
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Room {self.room_id}: {self.state} -> {new_state}")
        self.state = new_state

    def _start_countdown(self):
        self._transition(COUNTDOWN)
        self.countdown = self.config.countdown_duration
        self._countdown_generation += 1
        self._scheduler.start_background_task(self._run_countdown, self._countdown_generation)
        logger.info("Countdown started in room %s", self.room_id)

    def _abort_countdown(self):
        self._countdown_generation += 1
        self._transition(LOBBY)
        self.countdown = self.config.countdown_duration
        logger.info("Countdown aborted in room %s", self.room_id)

    def _advance_countdown(self):
        self.countdown -= 1
        self._queue(COUNTDOWN_EVENT, self.countdown)
        if self.countdown > 0:
            return True
        self._countdown_generation += 1
        self._start_game()
        return False

    def _start_game(self):
        self._transition(PLAYING)
        for avatar in self.avatars.values():
            avatar.begin_trail()
        self._participants = [avatar.name for avatar in self.avatars.values()]
        self._last_broadcast = self._clock()
        self._loop_generation += 1
        self._scheduler.start_background_task(self._run_loop, self._loop_generation)
        self._queue_state()
        logger.info("Game started in room %s with %d players", self.room_id, len(self.avatars))

    def _step(self):
        for avatar in list(self.avatars.values()):
            if not avatar.alive:
                continue
            avatar.move(self.speed)
            if self.detector.collides(avatar, self.avatars.values(), self.speed):
                avatar.alive = False

        # Decided only after every avatar has moved this tick.
        if self._end_if_decided():
            return False

        now = self._clock()
        if now - self._last_broadcast >= self.config.broadcast_interval:
            self._last_broadcast = now
            self._queue_state()
        return True

    def _end_if_decided(self):
        survivors = [avatar for avatar in self.avatars.values() if avatar.alive]
        if len(survivors) > 1:
            return False
        self._end_game(survivors[0] if survivors else None)
        return True

    def _end_game(self, winner):
        self._loop_generation += 1
        self._countdown_generation += 1
        self._transition(GAME_OVER)
        winner_name = winner.name if winner else None
        self._score("record_game", winner_name, list(self._participants))
        for avatar in self.avatars.values():
            avatar.ready = False
        self._queue(
            GAME_OVER_EVENT,
            {
                "winner": winner_name or NO_WINNER,
                "winnerColor": winner.color if winner else None,
                "leaderboard": self._score("get_leaderboard"),
                "roomStats": self._score("get_room_stats"),
            },
        )
        self._queue_state()
        logger.info("Game over in room %s, winner: %s", self.room_id, winner_name or NO_WINNER)

    def _fail(self):
        with self.lock:
            self._loop_generation += 1
            self._countdown_generation += 1
            if self.state == COUNTDOWN:
                self._transition(LOBBY)
                self.countdown = self.config.countdown_duration
            elif self.state == PLAYING:
                self._transition(GAME_OVER)
                for avatar in self.avatars.values():
                    avatar.ready = False
                self._queue(
                    GAME_OVER_EVENT,
                    {
                        "winner": NO_WINNER,
                        "winnerColor": None,
                        "leaderboard": self._score("get_leaderboard"),
                        "roomStats": self._score("get_room_stats"),
                    },
                )
            if self.avatars:
                self._queue_state()

    # Timers

    def _run_countdown(self, generation):
        while True:
            self._scheduler.sleep(1)
            if not self._countdown_step(generation):
                return

    def _countdown_step(self, generation):
        try:
            with self.lock:
                if self.closed or generation != self._countdown_generation or self.state != COUNTDOWN:
                    return False
                keep_going = self._advance_countdown()
        except Exception:
            logger.exception("Countdown failed in room %s", self.room_id)
            self._fail()
            keep_going = False
        self._flush()
        return keep_going

    def advance_countdown(self):
        """Run one countdown decrement now, as the countdown timer would."""
        return self._countdown_step(self._countdown_generation)

    def _run_loop(self, generation):
        while True:
            self._scheduler.sleep(self.config.tick_interval)
            if not self._tick_step(generation):
                return

    def _tick_step(self, generation):
        try:
            with self.lock:
                if self.closed or generation != self._loop_generation or self.state != PLAYING:
                    return False
                keep_going = self._step()
        except Exception:
            logger.exception("Simulation failed in room %s", self.room_id)
            self._fail()
            keep_going = False
        self._flush()
        return keep_going

    def tick(self):
        """Run one simulation step now, as the game loop would."""
        return self._tick_step(self._loop_generation)

    # Scoring

    def _score(self, method, *args):
        try:
            return getattr(self.scores, method)(*args)
        except Exception:
            logger.exception("Score ledger failed in room %s, scoring disabled", self.room_id)
            self.scores = NullScoreTracker()
            return getattr(self.scores, method)(*args)

    # Outbound

    def _snapshot(self):
        return {
            "players": [avatar.to_snapshot() for avatar in self.avatars.values()],
            "state": self.state,
            "countdown": self.countdown,
            "speed": self.speed,
            "config": {
                "gameWidth": self.config.arena_width,
                "gameHeight": self.config.arena_height,
                "lineWidth": self.config.line_width,
                "speed": self.speed,
            },
        }

    def _queue(self, event, payload):
        self._outbox.append((event, payload))

    def _queue_state(self):
        self._queue(GAME_STATE_EVENT, self._snapshot())

    def _flush(self):
        with self._send_lock:
            with self.lock:
                events, self._outbox = self._outbox, []
            for event, payload in events:
                try:
                    self._broadcast(event, payload)
                except Exception:
                    logger.exception("Could not send %s to room %s", event, self.room_id)

    def broadcast_state(self):
        with self.lock:
            if self.closed:
                return
            self._queue_state()
        self._flush()

    # Introspection

    def snapshot(self):
        with self.lock:
            return self._snapshot()

    def summary(self):
        with self.lock:
            return {
                "roomId": self.room_id,
                "state": self.state,
                "players": len(self.avatars),
                "speed": self.speed,
            }

    def standings(self):
        with self.lock:
            return {
                "leaderboard": self._score("get_leaderboard"),
                "roomStats": self._score("get_room_stats"),
            }

    def is_empty(self):
        with self.lock:
            return not self.avatars

    def close(self):
        with self.lock:
            self.closed = True
            self._countdown_generation += 1
            self._loop_generation += 1
            self._outbox = []
