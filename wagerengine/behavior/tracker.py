"""
Player Behavior Tracker.

Keeps running statistics per player and segments bets into sessions:
a new session starts when more than 30 minutes have passed since the
previous bet, otherwise the current session is extended.

Risk level is recomputed on every bet (never sticky):
    high    if average bet > 1000 or session loss > 5000
    medium  if average bet > 500  or session loss > 2000
    low     otherwise

Session loss is the total staked on bets in the active session that are
not known to have won; a bet still waiting for its outcome counts as lost.
Voided bets (refused before an outcome was drawn) never count as lost.

State per player is serialized by a per-player lock, so concurrent bets
from the same player cannot race on totals or session selection.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Optional

import structlog

from wagerengine.engine.clock import Clock, SystemClock
from wagerengine.engine.pattern_store import Outcome
from wagerengine.schemas.bet import BetData, coerce

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

SESSION_GAP_MINUTES: float = 30.0


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


RECOMMENDATIONS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.HIGH: (
        "Consider taking a break",
        "Set daily betting limits",
        "Review your betting strategy",
    ),
    RiskLevel.MEDIUM: (
        "Monitor your spending",
        "Consider smaller bet sizes",
    ),
    RiskLevel.LOW: (),
}


@dataclass(frozen=True)
class RiskThresholds:
    """Responsible-gaming classification thresholds."""
    high_avg_bet: float = 1000.0
    high_session_loss: float = 5000.0
    medium_avg_bet: float = 500.0
    medium_session_loss: float = 2000.0


def classify_risk(
    average_bet_size: float,
    session_loss: float,
    thresholds: RiskThresholds = RiskThresholds(),
) -> RiskLevel:
    if average_bet_size > thresholds.high_avg_bet or session_loss > thresholds.high_session_loss:
        return RiskLevel.HIGH
    if average_bet_size > thresholds.medium_avg_bet or session_loss > thresholds.medium_session_loss:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ── State ─────────────────────────────────────────────────────────────────


@dataclass
class BetRecord:
    """
    One bet inside a session. won is None until the bet is settled.

    A voided bet was refused before any outcome existed: it stays in the
    running totals but is neither a win nor a loss.
    """
    amount: float
    game_id: str
    placed_at: datetime
    won: Optional[bool] = None
    payout: float = 0.0
    voided: bool = False

    @property
    def settled(self) -> bool:
        return self.won is not None

    @property
    def open(self) -> bool:
        return not self.settled and not self.voided

    @property
    def net(self) -> float:
        return self.payout - self.amount if self.settled else 0.0


@dataclass
class Session:
    started_at: datetime
    bets: list[BetRecord] = field(default_factory=list)
    profit: float = 0.0

    @property
    def last_bet_at(self) -> datetime:
        return self.bets[-1].placed_at if self.bets else self.started_at

    @property
    def loss(self) -> float:
        return sum(b.amount for b in self.bets if b.won is not True and not b.voided)


@dataclass
class PlayerBehavior:
    user_id: str
    total_bets: int = 0
    total_amount: float = 0.0
    average_bet_size: float = 0.0
    biggest_win: float = 0.0
    biggest_loss: float = 0.0
    sessions: list[Session] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW

    @property
    def current_session(self) -> Optional[Session]:
        return self.sessions[-1] if self.sessions else None


@dataclass(frozen=True)
class BehaviorResult:
    """What the caller gets back for each recorded bet."""
    risk_level: RiskLevel
    recommendations: tuple[str, ...]
    should_alert: bool
    session_loss: float = 0.0
    average_bet_size: float = 0.0

    def to_dict(self) -> dict:
        return {
            "risk_level": self.risk_level.value,
            "recommendations": list(self.recommendations),
            "should_alert": self.should_alert,
            "session_loss": round(self.session_loss, 2),
            "average_bet_size": round(self.average_bet_size, 2),
        }


@dataclass(frozen=True)
class BehaviorSnapshot:
    """Read-only copy of a player's behavior."""
    user_id: str
    total_bets: int
    total_amount: float
    average_bet_size: float
    biggest_win: float
    biggest_loss: float
    risk_level: RiskLevel
    session_count: int
    current_session_bets: int
    current_session_loss: float
    current_session_profit: float
    current_session_started_at: Optional[datetime]


# ── Tracker ───────────────────────────────────────────────────────────────


class BehaviorTracker:
    """Per-player running statistics, sessions and risk classification."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        session_gap_minutes: float = SESSION_GAP_MINUTES,
        thresholds: Optional[RiskThresholds] = None,
    ):
        self.clock = clock or SystemClock()
        self.session_gap = timedelta(minutes=session_gap_minutes)
        self.thresholds = thresholds or RiskThresholds()
        self._players: dict[str, PlayerBehavior] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, user_id: str, create: bool = True) -> Optional[threading.Lock]:
        lock = self._locks.get(user_id)
        if lock is None and create:
            with self._registry_lock:
                lock = self._locks.setdefault(user_id, threading.Lock())
        return lock

    def record_bet(self, user_id: Any, bet_data: Any) -> BehaviorResult:
        """
        Record a bet and classify the player's current risk.

        Raises:
            InvalidInputError: malformed bet data.
        """
        bet = coerce(BetData, bet_data)
        user_id = str(user_id)
        now = self.clock.now()

        while True:
            lock = self._lock_for(user_id)
            with lock:
                # forget() may have retired this lock while we waited on it
                if self._locks.get(user_id) is lock:
                    result = self._record_locked(user_id, bet, now)
                    break

        if result.should_alert:
            logger.warning(
                "high_risk_player",
                user_id=user_id,
                average_bet_size=round(result.average_bet_size, 2),
                session_loss=round(result.session_loss, 2),
            )
        return result

    def settle(self, user_id: Any, outcome: Outcome) -> Optional[BehaviorResult]:
        """
        Attach an outcome to the player's latest open bet on that game.

        Returns:
            The re-evaluated classification, or None if no matching bet exists.
        """
        user_id = str(user_id)
        lock = self._lock_for(user_id, create=False)
        if lock is not None:
            with lock:
                found = self._find_open_bet(user_id, outcome.game_id, outcome.bet_amount)
                if found is not None:
                    behavior, session, record = found
                    self._apply_settlement(behavior, session, record, outcome.win, outcome.payout)
                    return self._classify(behavior)

        logger.warning("settle_without_bet", user_id=user_id, game_id=outcome.game_id)
        return None

    def void(self, user_id: Any, game_id: Any, amount: float) -> Optional[BehaviorResult]:
        """
        Mark the player's latest open bet on a game as refused.

        The stake stays in total_bets / average_bet_size but no longer counts
        toward session loss.

        Returns:
            The re-evaluated classification, or None if no matching bet exists.
        """
        user_id = str(user_id)
        lock = self._lock_for(user_id, create=False)
        if lock is None:
            return None
        with lock:
            found = self._find_open_bet(user_id, str(game_id), amount)
            if found is None:
                return None
            behavior, _, record = found
            record.voided = True
            return self._classify(behavior)

    def get_behavior(self, user_id: Any) -> Optional[BehaviorSnapshot]:
        user_id = str(user_id)
        lock = self._lock_for(user_id, create=False)
        if lock is None:
            return None
        with lock:
            behavior = self._players.get(user_id)
            if behavior is None:
                return None
            session = behavior.current_session
            return BehaviorSnapshot(
                user_id=behavior.user_id,
                total_bets=behavior.total_bets,
                total_amount=behavior.total_amount,
                average_bet_size=behavior.average_bet_size,
                biggest_win=behavior.biggest_win,
                biggest_loss=behavior.biggest_loss,
                risk_level=behavior.risk_level,
                session_count=len(behavior.sessions),
                current_session_bets=len(session.bets) if session else 0,
                current_session_loss=session.loss if session else 0.0,
                current_session_profit=session.profit if session else 0.0,
                current_session_started_at=session.started_at if session else None,
            )

    def forget(self, user_id: Any) -> bool:
        """Drop a player's state and lock (profile deleted upstream)."""
        user_id = str(user_id)
        with self._registry_lock:
            lock = self._locks.pop(user_id, None)
        if lock is None:
            return False
        with lock:
            return self._players.pop(user_id, None) is not None

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._players

    @property
    def tracked_locks(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    # ── Internals (caller holds the player lock) ──────────────────────

    def _record_locked(self, user_id: str, bet: BetData, now: datetime) -> BehaviorResult:
        behavior = self._players.get(user_id)
        if behavior is None:
            behavior = PlayerBehavior(user_id=user_id)
            self._players[user_id] = behavior
            logger.debug("player_behavior_created", user_id=user_id)

        behavior.total_bets += 1
        behavior.total_amount += bet.amount
        behavior.average_bet_size = behavior.total_amount / behavior.total_bets

        session = behavior.current_session
        if session is None or now - session.last_bet_at > self.session_gap:
            session = Session(started_at=now)
            behavior.sessions.append(session)
            logger.debug("session_started", user_id=user_id, session_index=len(behavior.sessions))

        record = BetRecord(amount=bet.amount, game_id=bet.game_id, placed_at=now)
        session.bets.append(record)
        if bet.won is not None:
            self._apply_settlement(behavior, session, record, bet.won, bet.payout)

        return self._classify(behavior)

    def _find_open_bet(
        self, user_id: str, game_id: str, amount: float,
    ) -> Optional[tuple[PlayerBehavior, Session, BetRecord]]:
        behavior = self._players.get(user_id)
        if behavior is None:
            return None
        for session in reversed(behavior.sessions):
            for record in reversed(session.bets):
                if record.open and record.game_id == game_id and record.amount == amount:
                    return behavior, session, record
        return None

    def _apply_settlement(
        self,
        behavior: PlayerBehavior,
        session: Session,
        record: BetRecord,
        won: bool,
        payout: float,
    ) -> None:
        record.won = won
        record.payout = payout if won else 0.0
        session.profit += record.net
        if won:
            behavior.biggest_win = max(behavior.biggest_win, record.net)
        else:
            behavior.biggest_loss = max(behavior.biggest_loss, record.amount)

    def _classify(self, behavior: PlayerBehavior) -> BehaviorResult:
        session = behavior.current_session
        session_loss = session.loss if session else 0.0
        level = classify_risk(behavior.average_bet_size, session_loss, self.thresholds)
        behavior.risk_level = level
        return BehaviorResult(
            risk_level=level,
            recommendations=RECOMMENDATIONS[level],
            should_alert=level is RiskLevel.HIGH,
            session_loss=session_loss,
            average_bet_size=behavior.average_bet_size,
        )
