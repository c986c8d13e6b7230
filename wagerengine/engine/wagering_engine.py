"""
Wagering Engine — orchestrates the per-bet decision flow.

This is the single entry point the API layer talks to. For each bet it:
1. Records the bet with the Behavior Tracker (responsible-gaming risk)
2. Screens it with the Fraud Scorer
3. Unless the bet is suspended, generates the outcome (fairness-adjusted)
4. Settles the bet in the Behavior Tracker with the outcome; a suspended
   bet is voided instead, so it never counts toward session loss

Odds, difficulty and analytics queries read the shared stores independently.
All randomness and time flow through the injected source and clock.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from wagerengine.behavior.tracker import BehaviorResult, BehaviorTracker, RiskThresholds
from wagerengine.config import Settings
from wagerengine.engine.analytics import GameAnalytics, GameAnalyticsReport
from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.clock import Clock, SystemClock
from wagerengine.engine.difficulty import DifficultyAdjuster
from wagerengine.engine.fairness import FairnessController, FairnessSnapshot
from wagerengine.engine.odds import OddsCalculator
from wagerengine.engine.outcome import OutcomeGenerator
from wagerengine.engine.pattern_store import Outcome, PatternStore
from wagerengine.engine.randomness import RandomSource, build_random_source
from wagerengine.fraud.scorer import FraudScorer, RecommendedAction, RiskAssessment, default_indicators
from wagerengine.schemas.bet import BetData, PlayerHistory, coerce
from wagerengine.schemas.game import GameConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BetDecision:
    """
    Everything decided about one bet.

    outcome is None when the fraud screen suspended the bet.
    """
    user_id: str
    behavior: BehaviorResult
    risk: RiskAssessment
    outcome: Optional[Outcome]

    @property
    def blocked(self) -> bool:
        return self.outcome is None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "blocked": self.blocked,
            "behavior": self.behavior.to_dict(),
            "risk": self.risk.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


class WageringEngine:
    """
    Production wagering decision engine.

    Orchestrates: Behavior → Fraud → Fairness → Outcome → Pattern Store → Settle
    """

    def __init__(
        self,
        catalog: Optional[GameCatalog] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Clock] = None,
        pattern_store: Optional[PatternStore] = None,
        fairness: Optional[FairnessController] = None,
        tracker: Optional[BehaviorTracker] = None,
        scorer: Optional[FraudScorer] = None,
        odds: Optional[OddsCalculator] = None,
    ):
        self.clock = clock or SystemClock()
        self.catalog = catalog if catalog is not None else GameCatalog.default()
        self.pattern_store = pattern_store or PatternStore()
        self.fairness = fairness or FairnessController()
        self.tracker = tracker or BehaviorTracker(clock=self.clock)
        self.scorer = scorer or FraudScorer(clock=self.clock)
        self.outcomes = OutcomeGenerator(
            self.catalog, self.pattern_store, self.fairness, rng=rng, clock=self.clock,
        )
        self.odds = odds or OddsCalculator(
            self.catalog, self.pattern_store, house_edge=self.fairness.target_house_edge,
        )
        self.difficulty = DifficultyAdjuster(self.catalog)
        self.analytics = GameAnalytics(self.catalog, self.pattern_store, self.fairness)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        catalog: Optional[GameCatalog] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Clock] = None,
    ) -> "WageringEngine":
        """Build an engine with every component tuned from Settings."""
        clock = clock or SystemClock()
        catalog = catalog or GameCatalog.load(settings.game_catalog_path)
        if rng is None:
            rng = build_random_source(
                settings.rng_backend,
                seed=settings.rng_seed,
                server_seed=settings.rng_server_seed,
                client_seed=settings.rng_client_seed,
            )

        pattern_store = PatternStore(capacity=settings.pattern_capacity)
        fairness = FairnessController(
            target_house_edge=settings.house_edge,
            drift_tolerance=settings.fairness_drift_tolerance,
            loss_streak_threshold=settings.loss_streak_threshold,
            win_streak_threshold=settings.win_streak_threshold,
            loss_streak_boost=settings.loss_streak_boost,
            win_streak_penalty=settings.win_streak_penalty,
            probability_ceiling=settings.probability_ceiling,
            probability_floor=settings.probability_floor,
        )
        tracker = BehaviorTracker(
            clock=clock,
            session_gap_minutes=settings.session_gap_minutes,
            thresholds=RiskThresholds(
                high_avg_bet=settings.high_risk_avg_bet,
                high_session_loss=settings.high_risk_session_loss,
                medium_avg_bet=settings.medium_risk_avg_bet,
                medium_session_loss=settings.medium_risk_session_loss,
            ),
        )
        scorer = FraudScorer(
            indicators=default_indicators(
                unusual_bet_multiplier=settings.unusual_bet_multiplier,
                rapid_betting_max_bets=settings.rapid_betting_max_bets,
                rapid_betting_window_seconds=settings.rapid_betting_window_seconds,
                known_fraud_signatures=tuple(settings.known_fraud_signatures),
                blocked_user_agents=tuple(settings.blocked_user_agents),
                blocked_ip_prefixes=tuple(settings.blocked_ip_prefixes),
            ),
            clock=clock,
            indicator_weight=settings.indicator_weight,
            suspicious_threshold=settings.suspicious_threshold,
            suspend_threshold=settings.suspend_threshold,
            monitor_threshold=settings.monitor_threshold,
        )
        odds = OddsCalculator(
            catalog,
            pattern_store,
            house_edge=settings.house_edge,
            sample_size=settings.odds_sample_size,
            trend_window=settings.odds_trend_window,
            odds_min=settings.odds_min,
            odds_max=settings.odds_max,
            high_volume_threshold=settings.high_volume_threshold,
            low_volume_threshold=settings.low_volume_threshold,
        )

        logger.info(
            "wagering_engine_configured",
            environment=settings.environment,
            n_games=len(catalog),
            rng_backend=settings.rng_backend,
            house_edge=settings.house_edge,
        )
        return cls(
            catalog=catalog,
            rng=rng,
            clock=clock,
            pattern_store=pattern_store,
            fairness=fairness,
            tracker=tracker,
            scorer=scorer,
            odds=odds,
        )

    # ── Per-bet flow ──────────────────────────────────────────────────

    def place_bet(self, user_id: Any, bet_data: Any, player_history: Any = None) -> BetDecision:
        """
        Run the full decision flow for one bet.

        Raises:
            GameNotFoundError: unknown game id (checked before any state changes).
            InvalidInputError: malformed bet or history.
        """
        user_id = str(user_id)
        bet = coerce(BetData, bet_data)
        history = coerce(PlayerHistory, player_history)
        self.catalog.get(bet.game_id)

        # The engine decides the result; any caller-supplied settlement is ignored
        behavior = self.tracker.record_bet(user_id, bet.model_copy(update={"won": None, "payout": 0.0}))
        risk = self.scorer.evaluate(user_id, bet, history)

        if risk.recommended_action is RecommendedAction.SUSPEND:
            logger.warning(
                "bet_blocked",
                user_id=user_id,
                game_id=bet.game_id,
                indicators=list(risk.indicators),
            )
            voided = self.tracker.void(user_id, bet.game_id, bet.amount)
            return BetDecision(user_id=user_id, behavior=voided or behavior, risk=risk, outcome=None)

        outcome = self.outcomes.generate(bet.game_id, bet.amount, history)
        settled = self.tracker.settle(user_id, outcome)
        return BetDecision(
            user_id=user_id,
            behavior=settled or behavior,
            risk=risk,
            outcome=outcome,
        )

    # ── Component operations ──────────────────────────────────────────

    def generate_outcome(self, game_id: Any, bet_amount: float, player_history: Any = None) -> Outcome:
        return self.outcomes.generate(game_id, bet_amount, player_history)

    def record_bet(self, user_id: Any, bet_data: Any) -> BehaviorResult:
        return self.tracker.record_bet(user_id, bet_data)

    def detect_suspicious_activity(self, user_id: Any, bet_data: Any, user_profile: Any = None) -> RiskAssessment:
        return self.scorer.evaluate(user_id, bet_data, user_profile)

    def calculate_optimal_odds(self, game_id: Any, market_conditions: Any = None) -> float:
        return self.odds.calculate_optimal_odds(game_id, market_conditions)

    def adjust_difficulty(self, game_id: Any, skill_level: float, recent_performance: Any = None) -> GameConfig:
        return self.difficulty.adjust(game_id, skill_level, recent_performance)

    def game_analytics(self, game_id: Any) -> GameAnalyticsReport:
        return self.analytics.summarize(game_id)

    def fairness_metrics(self) -> FairnessSnapshot:
        return self.fairness.snapshot()

    def forget_player(self, user_id: Any) -> bool:
        """Drop all per-player state (behavior and rapid-betting windows)."""
        self.scorer.forget(user_id)
        return self.tracker.forget(user_id)

    # ── Rehydration ───────────────────────────────────────────────────

    def rehydrate(self, outcomes: Iterable[Outcome]) -> int:
        """
        Replay persisted outcomes into the pattern store and fairness counters.

        Outcomes for games no longer in the catalog are skipped.

        Returns:
            Number of outcomes replayed.
        """
        replayed = 0
        wins = 0
        skipped = 0
        for outcome in outcomes:
            if outcome.game_id not in self.catalog:
                skipped += 1
                continue
            self.pattern_store.append(outcome)
            replayed += 1
            if outcome.win:
                wins += 1

        self.fairness.restore(total_games=replayed, player_wins=wins)
        logger.info("engine_rehydrated", replayed=replayed, player_wins=wins, skipped=skipped)
        return replayed
