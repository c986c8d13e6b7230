"""
Fraud Indicators — independent boolean suspicion signals.

Each indicator is a predicate over an IndicatorContext. Indicators do not
know about each other or about scoring; the FraudScorer counts how many
fire. Any callable matching IndicatorPredicate can be registered.

Built-in indicators:
- rapid_betting: more than N bets inside a sliding time window
- unusual_bet_size: amount > 10 × the player's historical average
- fraud_pattern_match: bet carries a signature from the known-abuse set
- suspicious_device: user agent / IP matches an operator blocklist

rapid_betting, fraud_pattern_match and suspicious_device ship inert: with
no threshold, signatures or blocklist configured they never fire. Thresholds
are operator policy and are supplied through Settings.
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Protocol

import structlog

from wagerengine.schemas.bet import BetData, PlayerHistory

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

UNUSUAL_BET_MULTIPLIER: float = 10.0
RAPID_BETTING_WINDOW_SECONDS: float = 60.0
RAPID_BETTING_SWEEP_INTERVAL: int = 1000     # evaluations between stale-player sweeps

RAPID_BETTING = "rapid_betting"
UNUSUAL_BET_SIZE = "unusual_bet_size"
FRAUD_PATTERN_MATCH = "fraud_pattern_match"
SUSPICIOUS_DEVICE = "suspicious_device"


@dataclass(frozen=True)
class IndicatorContext:
    """Everything an indicator may look at for one bet."""
    user_id: str
    bet: BetData
    profile: PlayerHistory
    now: datetime


class IndicatorPredicate(Protocol):
    """Protocol for suspicion indicators."""

    def __call__(self, context: IndicatorContext) -> bool:
        """Return True when the bet shows this indicator."""
        ...


class UnusualBetSizeIndicator:
    """
    Bet is far above the player's historical average.

    Players without a baseline (average 0) never trigger this indicator.
    """

    def __init__(self, multiplier: float = UNUSUAL_BET_MULTIPLIER):
        self.multiplier = multiplier

    def __call__(self, context: IndicatorContext) -> bool:
        baseline = context.profile.average_bet_size
        if baseline <= 0:
            return False
        return context.bet.amount > baseline * self.multiplier


class RapidBettingIndicator:
    """
    Too many bets from one player inside a sliding window.

    Every evaluation is counted as a bet at context.now. With max_bets=None
    the window is still maintained but the indicator never fires. Players
    whose window has emptied are dropped on a periodic sweep.
    """

    def __init__(
        self,
        max_bets: Optional[int] = None,
        window_seconds: float = RAPID_BETTING_WINDOW_SECONDS,
        sweep_interval: int = RAPID_BETTING_SWEEP_INTERVAL,
    ):
        self.max_bets = max_bets
        self.window = timedelta(seconds=window_seconds)
        self.sweep_interval = sweep_interval
        self._recent: dict[str, deque[datetime]] = {}
        self._evaluations = 0
        self._lock = threading.Lock()

    def __call__(self, context: IndicatorContext) -> bool:
        cutoff = context.now - self.window
        with self._lock:
            stamps = self._recent.setdefault(context.user_id, deque())
            stamps.append(context.now)
            _expire(stamps, cutoff)
            count = len(stamps)

            self._evaluations += 1
            if self._evaluations % self.sweep_interval == 0:
                self._sweep(cutoff)

        if self.max_bets is None:
            return False
        return count > self.max_bets

    def bets_in_window(self, user_id: str) -> int:
        with self._lock:
            return len(self._recent.get(user_id, ()))

    @property
    def tracked_players(self) -> int:
        with self._lock:
            return len(self._recent)

    def forget(self, user_id: str) -> None:
        with self._lock:
            self._recent.pop(user_id, None)

    def _sweep(self, cutoff: datetime) -> None:
        # Caller holds self._lock
        for user_id in list(self._recent):
            stamps = self._recent[user_id]
            _expire(stamps, cutoff)
            if not stamps:
                del self._recent[user_id]


def _expire(stamps: deque[datetime], cutoff: datetime) -> None:
    while stamps and stamps[0] <= cutoff:
        stamps.popleft()


class FraudPatternIndicator:
    """
    Match bet signatures against a maintained set of known abuse patterns.

    Signatures are read from bet metadata: "pattern_signature" (str) and/or
    "signatures" (list of str), as tagged by upstream detection.
    """

    def __init__(self, known_signatures: Iterable[str] = ()):
        self._known: set[str] = set(known_signatures)
        self._lock = threading.Lock()

    def add_signature(self, signature: str) -> None:
        with self._lock:
            self._known.add(signature)
        logger.info("fraud_signature_added", signature=signature)

    def remove_signature(self, signature: str) -> None:
        with self._lock:
            self._known.discard(signature)

    @property
    def known_signatures(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._known)

    def __call__(self, context: IndicatorContext) -> bool:
        metadata = context.bet.metadata
        tags: set[str] = set()
        single = metadata.get("pattern_signature")
        if isinstance(single, str):
            tags.add(single)
        many = metadata.get("signatures")
        if isinstance(many, (list, tuple, set, frozenset)):
            tags.update(s for s in many if isinstance(s, str))
        if not tags:
            return False
        with self._lock:
            return not self._known.isdisjoint(tags)


class SuspiciousDeviceIndicator:
    """
    Heuristic over connection / device metadata.

    Fires when metadata["user_agent"] contains a blocked substring
    (case-insensitive) or metadata["ip"] starts with a blocked prefix.
    """

    def __init__(
        self,
        blocked_user_agents: Iterable[str] = (),
        blocked_ip_prefixes: Iterable[str] = (),
    ):
        self.blocked_user_agents = tuple(ua.lower() for ua in blocked_user_agents if ua)
        self.blocked_ip_prefixes = tuple(p for p in blocked_ip_prefixes if p)

    def __call__(self, context: IndicatorContext) -> bool:
        metadata = context.bet.metadata
        user_agent = metadata.get("user_agent")
        if isinstance(user_agent, str) and self.blocked_user_agents:
            ua = user_agent.lower()
            if any(blocked in ua for blocked in self.blocked_user_agents):
                return True
        ip = metadata.get("ip")
        if isinstance(ip, str) and self.blocked_ip_prefixes:
            if ip.startswith(self.blocked_ip_prefixes):
                return True
        return False
