"""
Pattern Store — bounded per-game history of outcomes.

Each game keeps at most `capacity` outcomes in insertion order; when a new
outcome would exceed the cap the oldest one is dropped. Appends, trims and
reads for the same game are serialized by a per-game lock, and readers
always receive an immutable snapshot, never a view that can change mid-read.
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

import structlog

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_CAPACITY: int = 1000


@dataclass(frozen=True)
class Outcome:
    """
    Result of a single bet. Created once, never modified.

    random_value and probability_used are kept so every decision can be
    audited: win == (random_value < probability_used).
    """
    game_id: str
    bet_amount: float
    win: bool
    payout: float                # bet_amount × multiplier on a win, else 0
    probability_used: float      # Fairness-adjusted win probability
    random_value: float          # Raw sample in [0, 1)
    timestamp: datetime
    house_edge: float = 0.05
    fairness_drift: bool = False  # Global win rate outside tolerance at this bet

    @property
    def net(self) -> float:
        """Player profit for this bet (negative on a loss)."""
        return self.payout - self.bet_amount

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "bet_amount": round(self.bet_amount, 2),
            "win": self.win,
            "payout": round(self.payout, 2),
            "probability_used": round(self.probability_used, 6),
            "random_value": self.random_value,
            "timestamp": self.timestamp.isoformat(),
            "house_edge": self.house_edge,
            "fairness_drift": self.fairness_drift,
        }


class PatternStore:
    """Per-game FIFO outcome history with a hard capacity."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Pattern store capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._history: dict[str, deque[Outcome]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _slot(self, game_id: str) -> tuple[threading.Lock, deque[Outcome]]:
        """Get (or lazily create) the lock and buffer for a game."""
        lock = self._locks.get(game_id)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.get(game_id)
                if lock is None:
                    self._history[game_id] = deque(maxlen=self.capacity)
                    lock = threading.Lock()
                    self._locks[game_id] = lock
        return lock, self._history[game_id]

    def append(self, outcome: Outcome) -> int:
        """
        Record an outcome, evicting the oldest entry when full.

        Returns:
            The game's history length after the append.
        """
        lock, history = self._slot(outcome.game_id)
        with lock:
            evicted = len(history) == self.capacity
            history.append(outcome)
            size = len(history)
        if evicted:
            logger.debug("pattern_evicted", game_id=outcome.game_id, capacity=self.capacity)
        return size

    def extend(self, outcomes: Iterable[Outcome]) -> None:
        for outcome in outcomes:
            self.append(outcome)

    def snapshot(self, game_id: str, limit: Optional[int] = None) -> tuple[Outcome, ...]:
        """
        Consistent copy of a game's history, oldest first.

        Args:
            limit: Only return the most recent `limit` outcomes.
        """
        if game_id not in self._locks:
            return ()
        lock, history = self._slot(game_id)
        with lock:
            items = tuple(history)
        if limit is not None:
            items = items[-limit:] if limit > 0 else ()
        return items

    def count(self, game_id: str) -> int:
        if game_id not in self._locks:
            return 0
        lock, history = self._slot(game_id)
        with lock:
            return len(history)

    def game_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._history)

    def clear(self, game_id: Optional[str] = None) -> None:
        """Drop history for one game, or for all games."""
        targets = [game_id] if game_id is not None else self.game_ids()
        for gid in targets:
            if gid not in self._locks:
                continue
            lock, history = self._slot(gid)
            with lock:
                history.clear()
