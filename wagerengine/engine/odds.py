"""
Dynamic Odds Calculator.

Derives display odds from recent history:

    win_rate  = wins / n            over the last ≤100 outcomes
    base      = 1 / (win_rate + house_edge)
    volume    = -0.05 if volume > 10 000, +0.03 if volume < 1 000, else 0
    trend     = -0.02 if ≥8 of the last 10 won, +0.02 if ≤2 won, else 0
    odds      = clamp(base × (1 + volume + trend), 1.1, 10.0)

With no history the game's configured default odds are returned (clamped
to the same range).
"""

from typing import Any, Optional, Sequence

import structlog

from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.fairness import TARGET_HOUSE_EDGE
from wagerengine.engine.pattern_store import Outcome, PatternStore
from wagerengine.exceptions import ConfigurationError
from wagerengine.schemas.bet import MarketConditions, coerce

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

ODDS_MIN: float = 1.1
ODDS_MAX: float = 10.0
SAMPLE_SIZE: int = 100
TREND_WINDOW: int = 10

HIGH_VOLUME_THRESHOLD: float = 10_000.0
LOW_VOLUME_THRESHOLD: float = 1_000.0
HIGH_VOLUME_ADJUSTMENT: float = -0.05
LOW_VOLUME_ADJUSTMENT: float = 0.03

HOT_TREND_WINS: int = 8       # Players winning too much → shorten odds
COLD_TREND_WINS: int = 2      # Players losing too much → lengthen odds
TREND_ADJUSTMENT: float = 0.02


class OddsCalculator:
    """History-driven display odds."""

    def __init__(
        self,
        catalog: GameCatalog,
        pattern_store: PatternStore,
        house_edge: float = TARGET_HOUSE_EDGE,
        sample_size: int = SAMPLE_SIZE,
        trend_window: int = TREND_WINDOW,
        odds_min: float = ODDS_MIN,
        odds_max: float = ODDS_MAX,
        high_volume_threshold: float = HIGH_VOLUME_THRESHOLD,
        low_volume_threshold: float = LOW_VOLUME_THRESHOLD,
    ):
        if not 0.0 < house_edge < 1.0:
            raise ConfigurationError(
                f"house_edge must be in (0, 1), got {house_edge}",
                field="house_edge",
                details={"house_edge": house_edge},
            )
        if sample_size < 1 or trend_window < 1:
            raise ConfigurationError(
                "sample_size and trend_window must be positive",
                details={"sample_size": sample_size, "trend_window": trend_window},
            )
        if not 0.0 < odds_min <= odds_max:
            raise ConfigurationError(
                f"odds range must satisfy 0 < odds_min <= odds_max, got [{odds_min}, {odds_max}]",
                details={"odds_min": odds_min, "odds_max": odds_max},
            )
        self.catalog = catalog
        self.pattern_store = pattern_store
        self.house_edge = house_edge
        self.sample_size = sample_size
        self.trend_window = trend_window
        self.odds_min = odds_min
        self.odds_max = odds_max
        self.high_volume_threshold = high_volume_threshold
        self.low_volume_threshold = low_volume_threshold

    def calculate_optimal_odds(self, game_id: Any, market_conditions: Any = None) -> float:
        """
        Compute display odds for a game.

        Raises:
            GameNotFoundError: unknown game id.
            InvalidInputError: malformed market conditions.
        """
        game = self.catalog.get(game_id)
        market = coerce(MarketConditions, market_conditions)

        recent = self.pattern_store.snapshot(game.game_id, limit=self.sample_size)
        if not recent:
            return self._clamp(game.default_odds)

        win_rate = sum(1 for o in recent if o.win) / len(recent)
        base_odds = 1.0 / (win_rate + self.house_edge)
        volume_adj = self.volume_adjustment(market.volume)
        trend_adj = self.trend_adjustment(recent)

        odds = self._clamp(base_odds * (1.0 + volume_adj + trend_adj))

        logger.debug(
            "odds_calculated",
            game_id=game.game_id,
            sample=len(recent),
            win_rate=round(win_rate, 3),
            volume_adjustment=volume_adj,
            trend_adjustment=trend_adj,
            odds=round(odds, 4),
        )
        return odds

    def volume_adjustment(self, volume: Optional[float]) -> float:
        if volume is None:
            return 0.0
        if volume > self.high_volume_threshold:
            return HIGH_VOLUME_ADJUSTMENT
        if volume < self.low_volume_threshold:
            return LOW_VOLUME_ADJUSTMENT
        return 0.0

    def trend_adjustment(self, outcomes: Sequence[Outcome]) -> float:
        recent_wins = sum(1 for o in outcomes[-self.trend_window:] if o.win)
        if recent_wins >= HOT_TREND_WINS:
            return -TREND_ADJUSTMENT
        if recent_wins <= COLD_TREND_WINS:
            return TREND_ADJUSTMENT
        return 0.0

    def _clamp(self, odds: float) -> float:
        return max(self.odds_min, min(self.odds_max, odds))
