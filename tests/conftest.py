"""
Shared helpers for WagerEngine tests.

Provides:
- A fixed UTC instant for manual clocks
- A randomness source that always returns the same sample
- Outcome factory for filling the pattern store
"""

from datetime import datetime, timezone

from wagerengine.engine.pattern_store import Outcome

START = datetime(2026, 2, 11, 12, 0, 0, tzinfo=timezone.utc)


class FixedRandomSource:
    """Returns the same sample forever."""

    def __init__(self, value: float):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


def make_outcome(
    game_id: str = "space-adventure",
    win: bool = False,
    bet_amount: float = 100.0,
    multiplier: float = 1.5,
    timestamp: datetime = START,
) -> Outcome:
    return Outcome(
        game_id=game_id,
        bet_amount=bet_amount,
        win=win,
        payout=bet_amount * multiplier if win else 0.0,
        probability_used=0.45,
        random_value=0.1 if win else 0.9,
        timestamp=timestamp,
    )
