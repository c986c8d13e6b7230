"""
Bet Input Schemas — what the wagering API layer hands to the engine.

All models are validated at the engine boundary; a failure becomes an
InvalidInputError before any shared state is touched.
"""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wagerengine.exceptions import InvalidInputError

M = TypeVar("M", bound=BaseModel)


class BetData(BaseModel):
    """A single wager as submitted by the caller."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    amount: float = Field(gt=0.0, allow_inf_nan=False)
    game_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    won: Optional[bool] = None       # Set when the caller reports a settled bet
    payout: float = Field(default=0.0, ge=0.0)


class PlayerHistory(BaseModel):
    """Read-only snapshot of a player's recent record, owned by the profile service."""

    model_config = ConfigDict(frozen=True)

    recent_loss_streak: int = Field(default=0, ge=0)
    recent_win_streak: int = Field(default=0, ge=0)
    average_bet_size: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)


class MarketConditions(BaseModel):
    """Market inputs for odds calculation."""

    model_config = ConfigDict(frozen=True)

    volume: Optional[float] = Field(default=None, ge=0.0)


def coerce(model: type[M], value: Any) -> M:
    """
    Accept a model instance, a mapping, or None and return a validated model.

    Raises:
        InvalidInputError: if the value does not satisfy the model.
    """
    if isinstance(value, model):
        return value
    if value is None:
        value = {}
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise InvalidInputError.from_validation_error(exc, model.__name__) from exc
