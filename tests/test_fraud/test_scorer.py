"""
Composite Fraud Scorer Tests.

Score = min(1, n × 0.2); suspicious > 0.7; suspend > 0.8; monitor > 0.6.
"""

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from tests.conftest import START
from wagerengine.engine.clock import ManualClock
from wagerengine.exceptions import InvalidInputError
from wagerengine.fraud.indicators import (
    FRAUD_PATTERN_MATCH,
    RAPID_BETTING,
    SUSPICIOUS_DEVICE,
    UNUSUAL_BET_SIZE,
    RapidBettingIndicator,
)
from wagerengine.fraud.scorer import FraudScorer, RecommendedAction, default_indicators


def _always(context) -> bool:
    return True


def _never(context) -> bool:
    return False


def _scorer_firing(n: int, clock=None) -> FraudScorer:
    return FraudScorer(indicators={f"ind_{i}": _always for i in range(n)}, clock=clock)


BET = {"amount": 100, "game_id": "jungle-run"}


class TestFraudScorer:
    """Test indicator counting and action tiers."""

    def setup_method(self):
        self.clock = ManualClock(START)

    @pytest.mark.parametrize("n,score,suspicious,action", [
        (0, 0.0, False, RecommendedAction.ALLOW),
        (1, 0.2, False, RecommendedAction.ALLOW),
        (3, 0.6, False, RecommendedAction.ALLOW),
        (4, 0.8, True, RecommendedAction.MONITOR),
        (5, 1.0, True, RecommendedAction.SUSPEND),
        (6, 1.0, True, RecommendedAction.SUSPEND),
    ])
    def test_count_to_action(self, n, score, suspicious, action):
        """Each indicator adds 0.2; tiers are strict."""
        assessment = _scorer_firing(n, self.clock).evaluate("u1", BET)
        assert assessment.score == score
        assert assessment.is_suspicious is suspicious
        assert assessment.recommended_action is action
        assert len(assessment.indicators) == n

    def test_fired_names_reported_in_order(self):
        """Only fired names, in registration order."""
        scorer = FraudScorer(
            indicators={"a": _always, "b": _never, "c": _always},
            clock=self.clock,
        )
        assert scorer.evaluate("u1", BET).indicators == ("a", "c")

    def test_default_indicator_set(self):
        """Four built-in indicators are registered."""
        assert list(default_indicators()) == [
            RAPID_BETTING, UNUSUAL_BET_SIZE, FRAUD_PATTERN_MATCH, SUSPICIOUS_DEVICE,
        ]

    def test_defaults_quiet_for_ordinary_bet(self):
        """Only unusual bet size is active by default; a normal bet fires nothing."""
        scorer = FraudScorer(clock=self.clock)
        bet = {"amount": 100, "game_id": "jungle-run",
               "metadata": {"user_agent": "bot", "pattern_signature": "x"}}
        for _ in range(50):
            assessment = scorer.evaluate("u1", bet, {"average_bet_size": 100})
        assert assessment.indicators == ()
        assert assessment.recommended_action is RecommendedAction.ALLOW

    def test_unusual_bet_size_alone_is_allowed(self):
        """One indicator → 0.2 → allow."""
        scorer = FraudScorer(clock=self.clock)
        assessment = scorer.evaluate("u1", {"amount": 5000, "game_id": "jungle-run"},
                                     {"average_bet_size": 100})
        assert assessment.indicators == (UNUSUAL_BET_SIZE,)
        assert assessment.score == 0.2
        assert assessment.recommended_action is RecommendedAction.ALLOW

    def test_configured_indicators_combine(self):
        """All four configured indicators firing → 0.8 → monitor."""
        scorer = FraudScorer(
            indicators=default_indicators(
                rapid_betting_max_bets=0,
                known_fraud_signatures=("bonus-abuse",),
                blocked_user_agents=("headless",),
            ),
            clock=self.clock,
        )
        bet = {"amount": 5000, "game_id": "jungle-run",
               "metadata": {"pattern_signature": "bonus-abuse", "user_agent": "HeadlessChrome"}}
        assessment = scorer.evaluate("u1", bet, {"average_bet_size": 100})
        assert len(assessment.indicators) == 4
        assert assessment.score == 0.8
        assert assessment.recommended_action is RecommendedAction.MONITOR

    def test_register_and_unregister(self):
        """Indicators can be added and removed at runtime."""
        scorer = _scorer_firing(4, self.clock)
        scorer.register("extra", _always)
        assert scorer.evaluate("u1", BET).recommended_action is RecommendedAction.SUSPEND
        scorer.unregister("extra")
        assert scorer.evaluate("u1", BET).recommended_action is RecommendedAction.MONITOR

    def test_to_dict(self):
        """The envelope carries the string user id and action value."""
        data = _scorer_firing(4, self.clock).evaluate(42, BET).to_dict()
        assert data["user_id"] == "42"
        assert data["risk_score"] == 0.8
        assert data["recommended_action"] == "monitor"

    def test_invalid_bet(self):
        """Malformed bet → InvalidInputError."""
        with pytest.raises(InvalidInputError):
            FraudScorer(clock=self.clock).evaluate("u1", {"amount": 0, "game_id": "jungle-run"})

    def test_invalid_profile(self):
        """Malformed profile → InvalidInputError."""
        with pytest.raises(InvalidInputError):
            FraudScorer(clock=self.clock).evaluate("u1", BET, {"average_bet_size": -1})

    def test_forget_reaches_stateful_indicators(self):
        """forget clears per-player windows and skips plain predicates."""
        rapid = RapidBettingIndicator(max_bets=1)
        scorer = FraudScorer(indicators={"rapid": rapid, "plain": _never}, clock=self.clock)
        scorer.evaluate("u1", BET)
        scorer.evaluate(7, BET)
        assert rapid.tracked_players == 2

        scorer.forget("u1")
        scorer.forget(7)
        assert rapid.tracked_players == 0


class TestScoreProperties:
    """Property-based bounds on the score."""

    @given(n=st.integers(min_value=0, max_value=50))
    @hyp_settings(max_examples=60)
    def test_score_bounded_and_monotone(self, n):
        """Score stays in [0, 1] and never decreases with more indicators."""
        scorer = FraudScorer(indicators={})
        score = scorer.score(n)
        assert 0.0 <= score <= 1.0
        assert scorer.score(n + 1) >= score
