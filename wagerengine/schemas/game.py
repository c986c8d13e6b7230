"""
Game Catalog Schemas.

A GameConfig is loaded once at startup and never mutated afterwards.
Tuned variants (difficulty adjustment) are derived copies.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GameConfig(BaseModel):
    """Static per-game configuration."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    name: str = ""
    type: str = "other"
    base_probability: float = Field(gt=0.0, lt=1.0)   # player win probability
    difficulty: float = Field(ge=0.0, le=1.0)
    multiplier: float = Field(gt=1.0)                 # payout = bet × multiplier
    default_odds: Optional[float] = Field(default=None, gt=0.0)

    @model_validator(mode="before")
    @classmethod
    def _fill_default_odds(cls, data: Any) -> Any:
        # Displayed odds before any history exists match the payout multiplier
        if isinstance(data, dict) and data.get("default_odds") is None and "multiplier" in data:
            data = {**data, "default_odds": data["multiplier"]}
        return data
