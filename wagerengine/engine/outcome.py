"""
Outcome Generator.

Decides win/lose and payout for a single bet:

1. Look up the game's base win probability
2. Ask the Fairness Controller for the adjusted probability
3. Draw one sample u from the randomness source over [0, 1)
4. win iff u < adjusted probability; payout = amount × multiplier on a win
5. Append the Outcome to the Pattern Store, update fairness counters

Inputs are fully validated before the sample is drawn, so a rejected bet
never touches the pattern store or the counters.
"""

from typing import Any, Optional

import structlog

from wagerengine.engine.catalog import GameCatalog
from wagerengine.engine.clock import Clock, SystemClock
from wagerengine.engine.fairness import FairnessController
from wagerengine.engine.pattern_store import Outcome, PatternStore
from wagerengine.engine.randomness import RandomSource, SystemRandomSource
from wagerengine.exceptions import InvalidInputError
from wagerengine.schemas.bet import PlayerHistory, coerce

logger = structlog.get_logger(__name__)


class OutcomeGenerator:
    """Fairness-adjusted outcome generation."""

    def __init__(
        self,
        catalog: GameCatalog,
        pattern_store: PatternStore,
        fairness: FairnessController,
        rng: Optional[RandomSource] = None,
        clock: Optional[Clock] = None,
    ):
        self.catalog = catalog
        self.pattern_store = pattern_store
        self.fairness = fairness
        self.rng = rng or SystemRandomSource()
        self.clock = clock or SystemClock()

    def generate(
        self,
        game_id: Any,
        bet_amount: float,
        player_history: Any = None,
    ) -> Outcome:
        """
        Generate the outcome of one bet.

        Raises:
            GameNotFoundError: unknown game id.
            InvalidInputError: non-positive amount or malformed history.
        """
        game = self.catalog.get(game_id)
        amount = _validate_amount(bet_amount)
        history = coerce(PlayerHistory, player_history)

        probability = self.fairness.adjust(game.base_probability, history)
        sample = self.rng.random()
        if not 0.0 <= sample < 1.0:
            raise RuntimeError(f"Random source returned {sample!r}, expected a value in [0, 1)")
        player_wins = sample < probability

        snap = self.fairness.record(player_wins)

        outcome = Outcome(
            game_id=game.game_id,
            bet_amount=amount,
            win=player_wins,
            payout=amount * game.multiplier if player_wins else 0.0,
            probability_used=probability,
            random_value=sample,
            timestamp=self.clock.now(),
            house_edge=self.fairness.target_house_edge,
            fairness_drift=snap.is_drifting,
        )
        self.pattern_store.append(outcome)

        logger.debug(
            "outcome_generated",
            game_id=game.game_id,
            win=player_wins,
            probability=round(probability, 4),
            payout=round(outcome.payout, 2),
        )
        return outcome


def _validate_amount(bet_amount: Any) -> float:
    if isinstance(bet_amount, bool) or not isinstance(bet_amount, (int, float)):
        raise InvalidInputError(
            f"Bet amount must be a number, got {type(bet_amount).__name__}",
            field="bet_amount",
        )
    amount = float(bet_amount)
    if not amount > 0 or amount == float("inf"):
        raise InvalidInputError(
            f"Bet amount must be positive and finite, got {bet_amount}",
            field="bet_amount",
            details={"bet_amount": bet_amount},
        )
    return amount
