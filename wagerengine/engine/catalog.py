"""
Game Catalog — static per-game configuration.

Loaded once at startup (built-in defaults, a mapping, or a JSON file) and
read-only afterwards. Every entry is validated on load; a malformed entry
fails the whole load with ConfigurationError.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

import structlog
from pydantic import ValidationError

from wagerengine.exceptions import ConfigurationError, ErrorCode, GameNotFoundError
from wagerengine.schemas.game import GameConfig

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_GAMES: dict[str, dict[str, Any]] = {
    "space-adventure": {
        "name": "Space Adventure",
        "type": "adventure",
        "base_probability": 0.45,
        "difficulty": 0.6,
        "multiplier": 1.5,
    },
    "ocean-quest": {
        "name": "Ocean Quest",
        "type": "exploration",
        "base_probability": 0.40,
        "difficulty": 0.7,
        "multiplier": 2.0,
    },
    "jungle-run": {
        "name": "Jungle Run",
        "type": "action",
        "base_probability": 0.50,
        "difficulty": 0.5,
        "multiplier": 1.8,
    },
}


class GameCatalog:
    """Immutable game id → GameConfig lookup."""

    def __init__(self, games: Mapping[str, GameConfig]):
        self._games: Mapping[str, GameConfig] = MappingProxyType(dict(games))

    # ── Loaders ───────────────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, entries: Mapping[Any, Mapping[str, Any]]) -> "GameCatalog":
        """
        Build a catalog from {game_id: {base_probability, difficulty, multiplier, type, ...}}.

        Raises:
            ConfigurationError: if any entry is malformed.
        """
        games: dict[str, GameConfig] = {}
        for raw_id, entry in entries.items():
            game_id = str(raw_id)
            if not isinstance(entry, Mapping):
                raise ConfigurationError(
                    f"Catalog entry for {game_id} must be an object",
                    code=ErrorCode.MALFORMED_CATALOG,
                    details={"game_id": game_id},
                )
            try:
                games[game_id] = GameConfig.model_validate({**entry, "game_id": game_id})
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Malformed catalog entry for {game_id}",
                    code=ErrorCode.MALFORMED_CATALOG,
                    details={
                        "game_id": game_id,
                        "errors": [
                            {"loc": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]}
                            for e in exc.errors(include_url=False)
                        ],
                    },
                ) from exc

        logger.info("game_catalog_loaded", n_games=len(games))
        return cls(games)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "GameCatalog":
        """Load a catalog from a JSON object keyed by game id."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Game catalog file not found: {path}",
                details={"path": str(path)},
            ) from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Game catalog is not valid JSON: {path}",
                code=ErrorCode.MALFORMED_CATALOG,
                details={"path": str(path), "error": str(exc)},
            ) from exc

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Game catalog must be a JSON object keyed by game id",
                code=ErrorCode.MALFORMED_CATALOG,
                details={"path": str(path)},
            )
        return cls.from_mapping(data)

    @classmethod
    def default(cls) -> "GameCatalog":
        return cls.from_mapping(DEFAULT_GAMES)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "GameCatalog":
        """Load from a JSON path if given, else the built-in catalog."""
        if path:
            return cls.from_json_file(path)
        return cls.default()

    # ── Lookups ───────────────────────────────────────────────────────

    def get(self, game_id: Any) -> GameConfig:
        """
        Return the config for a game.

        Raises:
            GameNotFoundError: if the id is not in the catalog.
        """
        game = self._games.get(str(game_id))
        if game is None:
            raise GameNotFoundError(str(game_id))
        return game

    def base_probability(self, game_id: Any) -> float:
        return self.get(game_id).base_probability

    def __contains__(self, game_id: object) -> bool:
        return str(game_id) in self._games

    def __iter__(self) -> Iterator[str]:
        return iter(self._games)

    def __len__(self) -> int:
        return len(self._games)

    @property
    def game_ids(self) -> list[str]:
        return list(self._games)
