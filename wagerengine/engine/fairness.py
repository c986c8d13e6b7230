"""
Fairness Controller.

Two responsibilities:

1. Rubber-banding: a bounded, streak-dependent nudge to the win probability.
   Players on long losing runs get a small bump (capped); players on
   winning runs get a small reduction (floored). Rules are evaluated in
   order, first match wins:

     loss_streak > 5  →  min(0.55, base + 0.05)
     win_streak  > 3  →  max(0.35, base - 0.03)
     otherwise        →  base

2. House-edge telemetry: process-wide counters of games played and player
   wins, compared against the target win rate (1 - house_edge). Drift beyond
   the tolerance is reported, never corrected here.
"""

import threading
from dataclasses import dataclass
from typing import Any

import structlog

from wagerengine.exceptions import ConfigurationError
from wagerengine.schemas.bet import PlayerHistory, coerce

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

TARGET_HOUSE_EDGE: float = 0.05
DRIFT_TOLERANCE: float = 0.02

LOSS_STREAK_THRESHOLD: int = 5
WIN_STREAK_THRESHOLD: int = 3
LOSS_STREAK_BOOST: float = 0.05
WIN_STREAK_PENALTY: float = 0.03
PROBABILITY_CEILING: float = 0.55
PROBABILITY_FLOOR: float = 0.35


@dataclass(frozen=True)
class FairnessSnapshot:
    """Point-in-time view of the global fairness counters."""
    total_games: int
    player_wins: int
    target_house_edge: float
    player_win_rate: float       # player_wins / total_games (0 when no games)
    target_win_rate: float       # 1 - target_house_edge
    drift: float                 # player_win_rate - target_win_rate
    is_drifting: bool            # |drift| > tolerance

    def to_dict(self) -> dict:
        return {
            "total_games": self.total_games,
            "player_wins": self.player_wins,
            "target_house_edge": self.target_house_edge,
            "player_win_rate": round(self.player_win_rate, 4),
            "target_win_rate": round(self.target_win_rate, 4),
            "drift": round(self.drift, 4),
            "is_drifting": self.is_drifting,
        }


class FairnessController:
    """Streak-based probability adjustment plus global win-rate telemetry."""

    def __init__(
        self,
        target_house_edge: float = TARGET_HOUSE_EDGE,
        drift_tolerance: float = DRIFT_TOLERANCE,
        loss_streak_threshold: int = LOSS_STREAK_THRESHOLD,
        win_streak_threshold: int = WIN_STREAK_THRESHOLD,
        loss_streak_boost: float = LOSS_STREAK_BOOST,
        win_streak_penalty: float = WIN_STREAK_PENALTY,
        probability_ceiling: float = PROBABILITY_CEILING,
        probability_floor: float = PROBABILITY_FLOOR,
    ):
        if probability_floor > probability_ceiling:
            raise ConfigurationError(
                "probability_floor must not exceed probability_ceiling",
                details={"floor": probability_floor, "ceiling": probability_ceiling},
            )
        self.target_house_edge = target_house_edge
        self.drift_tolerance = drift_tolerance
        self.loss_streak_threshold = loss_streak_threshold
        self.win_streak_threshold = win_streak_threshold
        self.loss_streak_boost = loss_streak_boost
        self.win_streak_penalty = win_streak_penalty
        self.probability_ceiling = probability_ceiling
        self.probability_floor = probability_floor

        self._total_games = 0
        self._player_wins = 0
        self._lock = threading.Lock()

    # ── Rubber-banding ────────────────────────────────────────────────

    def adjust(self, base_probability: float, player_history: Any = None) -> float:
        """
        Return the win probability to use for this player.

        Args:
            base_probability: Catalog win probability for the game.
            player_history: PlayerHistory, a mapping with the same fields, or None.

        Raises:
            InvalidInputError: if the history is malformed.
        """
        history = coerce(PlayerHistory, player_history)

        if history.recent_loss_streak > self.loss_streak_threshold:
            return min(self.probability_ceiling, base_probability + self.loss_streak_boost)
        if history.recent_win_streak > self.win_streak_threshold:
            return max(self.probability_floor, base_probability - self.win_streak_penalty)
        return base_probability

    # ── Telemetry ─────────────────────────────────────────────────────

    @property
    def target_win_rate(self) -> float:
        return 1.0 - self.target_house_edge

    def record(self, player_won: bool) -> FairnessSnapshot:
        """Count one game and return the counters as they stand after it."""
        with self._lock:
            self._total_games += 1
            if player_won:
                self._player_wins += 1
            snap = self._snapshot_locked()

        if snap.is_drifting:
            logger.info(
                "fairness_drift_detected",
                player_win_rate=round(snap.player_win_rate, 3),
                target_win_rate=round(snap.target_win_rate, 3),
                total_games=snap.total_games,
            )
        return snap

    def restore(self, total_games: int, player_wins: int) -> None:
        """Add replayed counts (rehydration after restart)."""
        if total_games < 0 or player_wins < 0 or player_wins > total_games:
            raise ValueError("restored counters must satisfy 0 <= player_wins <= total_games")
        with self._lock:
            self._total_games += total_games
            self._player_wins += player_wins

    def snapshot(self) -> FairnessSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> FairnessSnapshot:
        total = self._total_games
        wins = self._player_wins
        win_rate = wins / total if total > 0 else 0.0
        drift = win_rate - self.target_win_rate
        return FairnessSnapshot(
            total_games=total,
            player_wins=wins,
            target_house_edge=self.target_house_edge,
            player_win_rate=win_rate,
            target_win_rate=self.target_win_rate,
            drift=drift,
            is_drifting=total > 0 and abs(drift) > self.drift_tolerance,
        )
