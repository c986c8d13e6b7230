"""
Game Analytics — per-game summaries over the stored pattern history.
"""

from dataclasses import dataclass
from typing import Any

from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.fairness import FairnessController, FairnessSnapshot
from wagerengine.engine.pattern_store import PatternStore


@dataclass(frozen=True)
class GameAnalyticsReport:
    """Summary of one game's retained history (at most the store capacity)."""
    game_id: str
    total_games: int
    player_win_rate: float
    average_bet: float
    total_wagered: float
    total_payout: float
    fairness: FairnessSnapshot

    @property
    def realized_house_edge(self) -> float:
        """1 - payout/wagered over the retained window (0 when empty)."""
        if self.total_wagered <= 0:
            return 0.0
        return 1.0 - self.total_payout / self.total_wagered

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "total_games": self.total_games,
            "player_win_rate": round(self.player_win_rate, 4),
            "average_bet": round(self.average_bet, 2),
            "total_wagered": round(self.total_wagered, 2),
            "total_payout": round(self.total_payout, 2),
            "realized_house_edge": round(self.realized_house_edge, 4),
            "fairness_metrics": self.fairness.to_dict(),
        }


class GameAnalytics:
    def __init__(self, catalog: GameCatalog, pattern_store: PatternStore, fairness: FairnessController):
        self.catalog = catalog
        self.pattern_store = pattern_store
        self.fairness = fairness

    def summarize(self, game_id: Any) -> GameAnalyticsReport:
        game = self.catalog.get(game_id)
        outcomes = self.pattern_store.snapshot(game.game_id)
        n = len(outcomes)
        wins = sum(1 for o in outcomes if o.win)
        wagered = sum(o.bet_amount for o in outcomes)
        return GameAnalyticsReport(
            game_id=game.game_id,
            total_games=n,
            player_win_rate=wins / n if n else 0.0,
            average_bet=wagered / n if n else 0.0,
            total_wagered=wagered,
            total_payout=sum(o.payout for o in outcomes),
            fairness=self.fairness.snapshot(),
        )
