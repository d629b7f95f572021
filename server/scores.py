"""Per-room win/loss ledger keyed by display name.

Entries are keyed by name rather than connection id so a player keeps
their history across reconnects. Nothing here touches disk; the ledger
lives as long as its room.
"""

import math
import time
from dataclasses import asdict, dataclass

ACTIVE_WINDOW = 60 * 60


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def _win_rate(wins, games_played):
    if games_played <= 0:
        return 0
    return _round_half_up(wins / games_played * 100)


@dataclass
class ScoreEntry:
    join_time: float
    last_seen: float
    wins: int = 0
    games_played: int = 0
    current_streak: int = 0
    best_streak: int = 0


def _project(name, entry):
    return {
        "name": name,
        "wins": entry.wins,
        "gamesPlayed": entry.games_played,
        "winRate": _win_rate(entry.wins, entry.games_played),
        "currentStreak": entry.current_streak,
        "bestStreak": entry.best_streak,
    }


class ScoreTracker:
    def __init__(self, clock=time.time):
        self._clock = clock
        self.player_scores = {}
        self.total_games_played = 0

    def register_player(self, name):
        now = self._clock()
        entry = self.player_scores.get(name)
        if entry is None:
            self.player_scores[name] = ScoreEntry(join_time=now, last_seen=now)
        else:
            entry.last_seen = now

    def record_game(self, winner_name, participants):
        """Count one finished game.

        ``winner_name`` is None when nobody survived. Names that were never
        registered are skipped.
        """
        self.total_games_played += 1
        now = self._clock()
        for name in dict.fromkeys(participants):
            entry = self.player_scores.get(name)
            if entry is None:
                continue
            entry.games_played += 1
            entry.last_seen = now
            if winner_name is not None and name == winner_name:
                entry.wins += 1
                entry.current_streak += 1
                entry.best_streak = max(entry.best_streak, entry.current_streak)
            else:
                entry.current_streak = 0

    def get_leaderboard(self):
        board = [_project(name, entry) for name, entry in self.player_scores.items()]
        board.sort(key=lambda row: (-row["wins"], -row["winRate"]))
        return board

    def get_player_score(self, name):
        entry = self.player_scores.get(name)
        if entry is None:
            return None
        return _project(name, entry)

    def get_room_stats(self):
        total_players = len(self.player_scores)
        cutoff = self._clock() - ACTIVE_WINDOW
        active = sum(1 for entry in self.player_scores.values() if entry.last_seen > cutoff)
        average = _round_half_up(self.total_games_played / total_players) if total_players else 0
        return {
            "totalGamesPlayed": self.total_games_played,
            "totalPlayers": total_players,
            "activePlayers": active,
            "averageGamesPerPlayer": average,
        }

    def export_scores(self):
        return {
            "playerScores": {name: asdict(entry) for name, entry in self.player_scores.items()},
            "totalGamesPlayed": self.total_games_played,
            "exportTime": self._clock(),
        }

    def import_scores(self, data):
        scores = data.get("playerScores")
        if scores:
            self.player_scores = {name: ScoreEntry(**fields) for name, fields in scores.items()}
        if data.get("totalGamesPlayed"):
            self.total_games_played = data["totalGamesPlayed"]


class NullScoreTracker:
    """Stand-in used once the real ledger has failed."""

    total_games_played = 0

    def register_player(self, name):
        pass

    def record_game(self, winner_name, participants):
        pass

    def get_leaderboard(self):
        return []

    def get_player_score(self, name):
        return None

    def get_room_stats(self):
        return {
            "totalGamesPlayed": 0,
            "totalPlayers": 0,
            "activePlayers": 0,
            "averageGamesPerPlayer": 0,
        }

    def export_scores(self):
        return {"playerScores": {}, "totalGamesPlayed": 0, "exportTime": 0}

    def import_scores(self, data):
        pass
