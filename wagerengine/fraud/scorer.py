"""
Composite Fraud / Risk Scorer.

Counts how many indicators fire for a bet and maps the count to an action:

    score       = min(1.0, n_indicators × 0.2)
    suspicious  = score > 0.7
    action      = suspend if score > 0.8, monitor if score > 0.6, else allow

The score is clamped before thresholds are applied, so any number of
registered indicators still yields a score in [0, 1]. It is rounded to
remove float noise (4 × 0.2 must equal 0.8, not 0.8000000000000002).
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional

import structlog

from wagerengine.engine.clock import Clock, SystemClock
from wagerengine.fraud.indicators import (
    FRAUD_PATTERN_MATCH,
    RAPID_BETTING,
    SUSPICIOUS_DEVICE,
    UNUSUAL_BET_SIZE,
    FraudPatternIndicator,
    IndicatorContext,
    IndicatorPredicate,
    RapidBettingIndicator,
    SuspiciousDeviceIndicator,
    UnusualBetSizeIndicator,
)
from wagerengine.schemas.bet import BetData, PlayerHistory, coerce

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

INDICATOR_WEIGHT: float = 0.2
SUSPICIOUS_THRESHOLD: float = 0.7
SUSPEND_THRESHOLD: float = 0.8
MONITOR_THRESHOLD: float = 0.6


class RecommendedAction(StrEnum):
    ALLOW = "allow"
    MONITOR = "monitor"
    SUSPEND = "suspend"


@dataclass(frozen=True)
class RiskAssessment:
    """Per-bet suspicion verdict. Computed fresh, never stored."""
    user_id: str
    indicators: tuple[str, ...]       # Tags of indicators that fired
    score: float                      # 0-1
    is_suspicious: bool
    recommended_action: RecommendedAction

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "indicators": list(self.indicators),
            "risk_score": self.score,
            "is_suspicious": self.is_suspicious,
            "recommended_action": self.recommended_action.value,
        }


def default_indicators(
    unusual_bet_multiplier: float = 10.0,
    rapid_betting_max_bets: Optional[int] = None,
    rapid_betting_window_seconds: float = 60.0,
    known_fraud_signatures: tuple[str, ...] = (),
    blocked_user_agents: tuple[str, ...] = (),
    blocked_ip_prefixes: tuple[str, ...] = (),
) -> dict[str, IndicatorPredicate]:
    """The four standard indicators, in evaluation order."""
    return {
        RAPID_BETTING: RapidBettingIndicator(rapid_betting_max_bets, rapid_betting_window_seconds),
        UNUSUAL_BET_SIZE: UnusualBetSizeIndicator(unusual_bet_multiplier),
        FRAUD_PATTERN_MATCH: FraudPatternIndicator(known_fraud_signatures),
        SUSPICIOUS_DEVICE: SuspiciousDeviceIndicator(blocked_user_agents, blocked_ip_prefixes),
    }


class FraudScorer:
    """Evaluate registered indicators and derive score + action."""

    def __init__(
        self,
        indicators: Optional[Mapping[str, IndicatorPredicate]] = None,
        clock: Optional[Clock] = None,
        indicator_weight: float = INDICATOR_WEIGHT,
        suspicious_threshold: float = SUSPICIOUS_THRESHOLD,
        suspend_threshold: float = SUSPEND_THRESHOLD,
        monitor_threshold: float = MONITOR_THRESHOLD,
    ):
        self.indicators: dict[str, IndicatorPredicate] = dict(
            indicators if indicators is not None else default_indicators()
        )
        self.clock = clock or SystemClock()
        self.indicator_weight = indicator_weight
        self.suspicious_threshold = suspicious_threshold
        self.suspend_threshold = suspend_threshold
        self.monitor_threshold = monitor_threshold

    def register(self, name: str, predicate: IndicatorPredicate) -> None:
        """Add or replace an indicator."""
        self.indicators[name] = predicate
        logger.info("fraud_indicator_registered", indicator=name)

    def unregister(self, name: str) -> None:
        self.indicators.pop(name, None)

    def forget(self, user_id: Any) -> None:
        """Drop per-player state held by stateful indicators."""
        for predicate in self.indicators.values():
            forget = getattr(predicate, "forget", None)
            if callable(forget):
                forget(str(user_id))

    def score(self, n_indicators: int) -> float:
        return round(min(1.0, max(0.0, n_indicators * self.indicator_weight)), 6)

    def recommended_action(self, score: float) -> RecommendedAction:
        if score > self.suspend_threshold:
            return RecommendedAction.SUSPEND
        if score > self.monitor_threshold:
            return RecommendedAction.MONITOR
        return RecommendedAction.ALLOW

    def evaluate(self, user_id: Any, bet_data: Any, user_profile: Any = None) -> RiskAssessment:
        """
        Screen one bet.

        Args:
            user_id: Player id.
            bet_data: BetData or mapping {amount, game_id, metadata}.
            user_profile: PlayerHistory or mapping carrying average_bet_size.

        Raises:
            InvalidInputError: malformed bet or profile.
        """
        context = IndicatorContext(
            user_id=str(user_id),
            bet=coerce(BetData, bet_data),
            profile=coerce(PlayerHistory, user_profile),
            now=self.clock.now(),
        )

        fired = tuple(name for name, predicate in self.indicators.items() if predicate(context))
        score = self.score(len(fired))
        action = self.recommended_action(score)
        assessment = RiskAssessment(
            user_id=context.user_id,
            indicators=fired,
            score=score,
            is_suspicious=score > self.suspicious_threshold,
            recommended_action=action,
        )

        if action is not RecommendedAction.ALLOW:
            logger.warning(
                "suspicious_activity",
                user_id=context.user_id,
                indicators=list(fired),
                risk_score=score,
                action=action.value,
            )
        return assessment
