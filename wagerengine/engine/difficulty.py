"""Skill-based difficulty tuning."""

from typing import Any

import structlog

from wagerengine.engine.catalog import GameCatalog
from wagerengine.exceptions import InvalidInputError
from wagerengine.schemas.game import GameConfig

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

SKILL_SENSITIVITY: float = 0.2        # factor spans 0.9 – 1.1 over skill 0 – 1
MULTIPLIER_DAMPING: float = 0.1       # multiplier moves 10% as far as difficulty
DIFFICULTY_MIN: float = 0.1
DIFFICULTY_MAX: float = 1.0


class DifficultyAdjuster:
    """Derive a tuned GameConfig for a player; the catalog entry is never modified."""

    def __init__(self, catalog: GameCatalog):
        self.catalog = catalog

    @staticmethod
    def adjustment_factor(skill_level: float) -> float:
        return 1.0 + (skill_level - 0.5) * SKILL_SENSITIVITY

    def adjust(self, game_id: Any, skill_level: float, recent_performance: Any = None) -> GameConfig:
        """
        Return a tuned copy of the game's configuration.

        recent_performance is accepted for callers that track it; the current
        tuning curve depends on skill alone.

        Raises:
            GameNotFoundError: unknown game id.
            InvalidInputError: skill_level outside [0, 1].
        """
        base = self.catalog.get(game_id)
        if isinstance(skill_level, bool) or not isinstance(skill_level, (int, float)) \
                or not 0.0 <= skill_level <= 1.0:
            raise InvalidInputError(
                f"skill_level must be in [0, 1], got {skill_level!r}",
                field="skill_level",
            )

        factor = self.adjustment_factor(skill_level)
        difficulty = max(DIFFICULTY_MIN, min(DIFFICULTY_MAX, base.difficulty * factor))
        multiplier = base.multiplier * (1.0 + (factor - 1.0) * MULTIPLIER_DAMPING)

        logger.debug(
            "difficulty_adjusted",
            game_id=base.game_id,
            skill_level=skill_level,
            factor=round(factor, 4),
            difficulty=round(difficulty, 4),
            multiplier=round(multiplier, 4),
        )
        return base.model_copy(update={"difficulty": difficulty, "multiplier": multiplier})
