"""
Wagering Engine Integration Tests.

End-to-end bet flow: behavior → fraud → outcome → settlement, plus
rehydration, settings wiring and the statistical fairness check.
"""

import pytest
from pydantic import ValidationError

from tests.conftest import START, FixedRandomSource, make_outcome
from wagerengine.behavior.tracker import RiskLevel
from wagerengine.config import Settings
from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.clock import ManualClock
from wagerengine.engine.fairness import FairnessController
from wagerengine.engine.randomness import SeededRandomSource
from wagerengine.engine.wagering_engine import WageringEngine
from wagerengine.exceptions import ConfigurationError, GameNotFoundError, InvalidInputError
from wagerengine.fraud.indicators import RapidBettingIndicator
from wagerengine.fraud.scorer import FraudScorer, RecommendedAction


def _always(context) -> bool:
    return True


def _firing_scorer(n: int, clock) -> FraudScorer:
    return FraudScorer(indicators={f"ind_{i}": _always for i in range(n)}, clock=clock)


class TestPlaceBet:
    """Test the full per-bet decision flow."""

    def setup_method(self):
        self.catalog = GameCatalog.default()
        self.clock = ManualClock(START)
        self.engine = WageringEngine(
            catalog=self.catalog, rng=SeededRandomSource(seed=42), clock=self.clock,
        )

    def _engine(self, sample: float = None, scorer: FraudScorer = None) -> WageringEngine:
        rng = FixedRandomSource(sample) if sample is not None else SeededRandomSource(seed=42)
        return WageringEngine(catalog=self.catalog, rng=rng, clock=self.clock, scorer=scorer)

    def test_full_flow(self):
        """Allowed bet → outcome stored, counters updated, session settled."""
        decision = self.engine.place_bet("u1", {"amount": 100, "game_id": "space-adventure"})

        assert decision.blocked is False
        assert decision.outcome is not None
        assert decision.risk.recommended_action is RecommendedAction.ALLOW
        assert self.engine.pattern_store.count("space-adventure") == 1
        assert self.engine.fairness_metrics().total_games == 1

        snap = self.engine.tracker.get_behavior("u1")
        assert snap.total_bets == 1
        expected_profit = decision.outcome.payout - 100 if decision.outcome.win else -100
        assert snap.current_session_profit == pytest.approx(expected_profit)

    def test_settled_loss_reported(self):
        """A lost 2500 stake pushes the session into high risk."""
        engine = self._engine(0.99)
        decision = engine.place_bet("u1", {"amount": 2500, "game_id": "jungle-run"})
        assert decision.outcome.win is False
        assert decision.behavior.session_loss == 2500
        assert decision.behavior.risk_level is RiskLevel.HIGH

    def test_settled_win_clears_session_loss(self):
        """A won bet is not counted as session loss."""
        engine = self._engine(0.0)
        decision = engine.place_bet("u1", {"amount": 300, "game_id": "jungle-run"})
        assert decision.outcome.win is True
        assert decision.behavior.session_loss == 0
        assert engine.tracker.get_behavior("u1").biggest_win == pytest.approx(300 * 0.8)

    def test_caller_settlement_ignored(self):
        """A bet arriving with won/payout filled in is still decided by the engine."""
        engine = self._engine(0.99)
        decision = engine.place_bet(
            "u1", {"amount": 100, "game_id": "jungle-run", "won": True, "payout": 1_000_000},
        )
        snap = engine.tracker.get_behavior("u1")
        assert decision.outcome.win is False
        assert snap.biggest_win == 0.0
        assert snap.biggest_loss == 100

    def test_suspended_bet_blocked(self):
        """Five indicators → suspend: no outcome, counters untouched."""
        engine = self._engine(scorer=_firing_scorer(5, self.clock))
        decision = engine.place_bet("u1", {"amount": 100, "game_id": "ocean-quest"})

        assert decision.blocked is True
        assert decision.outcome is None
        assert decision.risk.recommended_action is RecommendedAction.SUSPEND
        assert engine.pattern_store.count("ocean-quest") == 0
        assert engine.fairness_metrics().total_games == 0
        # The attempt itself still counts toward the player's totals
        assert engine.tracker.get_behavior("u1").total_bets == 1
        assert decision.to_dict()["outcome"] is None

    def test_suspended_bets_not_counted_as_session_loss(self):
        """Six refused 400 stakes keep totals and average but lose nothing."""
        engine = self._engine(scorer=_firing_scorer(5, self.clock))
        decisions = [
            engine.place_bet("u1", {"amount": 400, "game_id": "jungle-run"})
            for _ in range(6)
        ]

        assert all(d.blocked for d in decisions)
        assert all(d.behavior.session_loss == 0 for d in decisions)
        assert decisions[-1].behavior.risk_level is RiskLevel.LOW
        assert engine.fairness_metrics().total_games == 0

        snap = engine.tracker.get_behavior("u1")
        assert snap.current_session_loss == 0
        assert snap.total_bets == 6
        assert snap.average_bet_size == pytest.approx(400)
        assert snap.risk_level is RiskLevel.LOW

    def test_monitored_bet_proceeds(self):
        """Four indicators → monitor: the bet still gets an outcome."""
        engine = self._engine(scorer=_firing_scorer(4, self.clock))
        decision = engine.place_bet("u1", {"amount": 100, "game_id": "ocean-quest"})
        assert decision.risk.recommended_action is RecommendedAction.MONITOR
        assert decision.outcome is not None

    def test_unknown_game_touches_nothing(self):
        """Unknown game is rejected before any state changes."""
        with pytest.raises(GameNotFoundError):
            self.engine.place_bet("u1", {"amount": 100, "game_id": "missing"})
        assert "u1" not in self.engine.tracker
        assert self.engine.fairness_metrics().total_games == 0

    def test_invalid_bet_touches_nothing(self):
        """Malformed bet or history is rejected before any state changes."""
        with pytest.raises(InvalidInputError):
            self.engine.place_bet("u1", {"amount": float("inf"), "game_id": "jungle-run"})
        with pytest.raises(InvalidInputError):
            self.engine.place_bet("u1", {"amount": 10, "game_id": "jungle-run"}, {"recent_loss_streak": -1})
        assert "u1" not in self.engine.tracker

    def test_loss_streak_history_used(self):
        """u=0.48 loses at base 0.45 but wins at 0.50 after a long losing streak."""
        engine = self._engine(0.48)
        cold = engine.place_bet("u1", {"amount": 10, "game_id": "space-adventure"})
        warm = engine.place_bet("u2", {"amount": 10, "game_id": "space-adventure"},
                                {"recent_loss_streak": 6})
        assert cold.outcome.win is False
        assert warm.outcome.win is True


class TestForgetPlayer:
    """Test dropping all per-player state."""

    def setup_method(self):
        self.clock = ManualClock(START)
        self.rapid = RapidBettingIndicator(max_bets=100)
        self.engine = WageringEngine(
            rng=SeededRandomSource(seed=42),
            clock=self.clock,
            scorer=FraudScorer(indicators={"rapid_betting": self.rapid}, clock=self.clock),
        )

    def test_forget_player_clears_tracker_and_indicators(self):
        """Behavior, lock and rapid-betting window all go."""
        self.engine.place_bet("u1", {"amount": 10, "game_id": "jungle-run"})
        assert self.rapid.tracked_players == 1
        assert self.engine.tracker.tracked_locks == 1

        assert self.engine.forget_player("u1") is True
        assert "u1" not in self.engine.tracker
        assert self.engine.tracker.tracked_locks == 0
        assert self.rapid.tracked_players == 0

    def test_forget_unknown_player(self):
        """Unknown player → False, nothing created."""
        assert self.engine.forget_player("ghost") is False
        assert self.engine.tracker.tracked_locks == 0


class TestComponentOperations:
    """Test pass-through component operations."""

    def setup_method(self):
        self.engine = WageringEngine(
            catalog=GameCatalog.default(), rng=SeededRandomSource(seed=42), clock=ManualClock(START),
        )

    def test_odds_follow_history(self):
        """Odds start from defaults and stay clamped once history exists."""
        assert self.engine.calculate_optimal_odds("ocean-quest") == 2.0
        for _ in range(20):
            self.engine.generate_outcome("ocean-quest", 10)
        odds = self.engine.calculate_optimal_odds("ocean-quest", {"volume": 5000})
        assert 1.1 <= odds <= 10.0

    def test_adjust_difficulty(self):
        """Tuned copy returned, catalog untouched."""
        tuned = self.engine.adjust_difficulty("space-adventure", 1.0)
        assert tuned.difficulty == pytest.approx(0.66)
        assert self.engine.catalog.get("space-adventure").difficulty == 0.6

    def test_game_analytics(self):
        """Analytics reflect generated outcomes."""
        for _ in range(10):
            self.engine.generate_outcome("jungle-run", 20)
        report = self.engine.game_analytics("jungle-run")
        assert report.total_games == 10
        assert report.total_wagered == 200
        assert report.fairness.total_games == 10


class TestRehydrate:
    """Test replaying persisted outcomes."""

    def setup_method(self):
        self.engine = WageringEngine(
            catalog=GameCatalog.default(), rng=SeededRandomSource(seed=42), clock=ManualClock(START),
        )

    def test_replays_outcomes(self):
        """Known games replayed, retired games skipped."""
        outcomes = [make_outcome(win=i % 4 == 0) for i in range(20)]
        outcomes.append(make_outcome(game_id="retired-game"))

        assert self.engine.rehydrate(outcomes) == 20
        assert self.engine.pattern_store.count("space-adventure") == 20
        assert "retired-game" not in self.engine.pattern_store.game_ids()
        metrics = self.engine.fairness_metrics()
        assert metrics.total_games == 20
        assert metrics.player_wins == 5

    def test_rehydrated_history_drives_odds(self):
        """100 replayed losses push odds to the ceiling."""
        self.engine.rehydrate([make_outcome(win=False) for _ in range(100)])
        assert self.engine.calculate_optimal_odds("space-adventure", {"volume": 5000}) == 10.0


class TestFromSettings:
    """Test engine wiring from Settings."""

    def test_components_wired(self):
        """Every tunable reaches its component."""
        cfg = Settings(
            rng_backend="seeded",
            rng_seed=7,
            pattern_capacity=5,
            house_edge=0.1,
            rapid_betting_max_bets=1,
            session_gap_minutes=10,
        )
        engine = WageringEngine.from_settings(cfg)

        assert isinstance(engine.outcomes.rng, SeededRandomSource)
        assert engine.pattern_store.capacity == 5
        assert engine.fairness.target_house_edge == 0.1
        assert engine.odds.house_edge == 0.1
        assert engine.tracker.session_gap.total_seconds() == 600

        for _ in range(8):
            engine.generate_outcome("jungle-run", 10)
        assert engine.pattern_store.count("jungle-run") == 5

        engine.detect_suspicious_activity("u1", {"amount": 10, "game_id": "jungle-run"})
        second = engine.detect_suspicious_activity("u1", {"amount": 10, "game_id": "jungle-run"})
        assert second.indicators == ("rapid_betting",)

    def test_same_seed_same_outcomes(self):
        """Two engines from one seeded config draw identical results."""
        cfg = Settings(rng_backend="seeded", rng_seed=11)
        clock = ManualClock(START)
        a = WageringEngine.from_settings(cfg, clock=clock)
        b = WageringEngine.from_settings(cfg, clock=clock)
        wins_a = [a.generate_outcome("ocean-quest", 10).win for _ in range(50)]
        wins_b = [b.generate_outcome("ocean-quest", 10).win for _ in range(50)]
        assert wins_a == wins_b

    def test_catalog_file(self, tmp_path):
        """game_catalog_path replaces the built-in games."""
        path = tmp_path / "games.json"
        path.write_text('{"dice": {"base_probability": 0.49, "difficulty": 0.3, "multiplier": 1.98}}')
        engine = WageringEngine.from_settings(Settings(game_catalog_path=str(path)))
        assert engine.catalog.game_ids == ["dice"]

    def test_zero_house_edge_rejected_by_settings(self):
        """house_edge=0 never reaches the odds formula."""
        with pytest.raises(ValidationError):
            Settings(house_edge=0.0)

    def test_zero_house_edge_rejected_by_engine(self):
        """A directly wired zero edge fails at construction, not on the first odds call."""
        with pytest.raises(ConfigurationError):
            WageringEngine(fairness=FairnessController(target_house_edge=0.0))


class TestStatisticalFairness:
    """Test long-run win rates."""

    def test_loss_streak_win_rate(self):
        """10,000 trials at a boosted 0.50 land within ±0.02 of 0.50."""
        engine = WageringEngine(
            catalog=GameCatalog.default(), rng=SeededRandomSource(2026), clock=ManualClock(START),
        )
        history = {"recent_loss_streak": 6}
        wins = sum(
            engine.generate_outcome("space-adventure", 10, history).win
            for _ in range(10_000)
        )
        assert abs(wins / 10_000 - 0.50) <= 0.02
        assert engine.pattern_store.count("space-adventure") == 1000
