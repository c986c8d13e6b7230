"""
Game Analytics Tests.
"""

import pytest

from tests.conftest import make_outcome
from wagerengine.engine.analytics import GameAnalytics
from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.fairness import FairnessController
from wagerengine.engine.pattern_store import PatternStore
from wagerengine.exceptions import GameNotFoundError


class TestGameAnalytics:
    """Test per-game summaries."""

    def setup_method(self):
        self.make = make_outcome
        self.store = PatternStore()
        self.fairness = FairnessController()
        self.analytics = GameAnalytics(GameCatalog.default(), self.store, self.fairness)

    def test_empty_game(self):
        """No history → all-zero report."""
        report = self.analytics.summarize("space-adventure")
        assert report.total_games == 0
        assert report.player_win_rate == 0.0
        assert report.average_bet == 0.0
        assert report.total_payout == 0.0
        assert report.realized_house_edge == 0.0

    def test_summary(self):
        """Totals, win rate and realized edge from stored outcomes."""
        self.store.append(self.make(win=True, bet_amount=100.0))   # payout 150
        self.store.append(self.make(win=False, bet_amount=300.0))
        report = self.analytics.summarize("space-adventure")
        assert report.total_games == 2
        assert report.player_win_rate == 0.5
        assert report.average_bet == 200.0
        assert report.total_wagered == 400.0
        assert report.total_payout == 150.0
        assert report.realized_house_edge == pytest.approx(1 - 150 / 400)

    def test_includes_fairness_metrics(self):
        """The global fairness snapshot rides along."""
        self.fairness.record(True)
        report = self.analytics.summarize("space-adventure")
        assert report.fairness.total_games == 1
        assert report.to_dict()["fairness_metrics"]["player_wins"] == 1

    def test_unknown_game(self):
        """Unknown game → GameNotFoundError."""
        with pytest.raises(GameNotFoundError):
            self.analytics.summarize("missing")
