"""
Engine Exceptions Module.

Centralized exception definitions with:
- Error codes for caller-side handling
- Structured details for log correlation

Failures are synchronous and local: the engine performs no I/O,
so every error propagates a single hop back to the caller.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError


# ============================================================================
# ERROR CODES
# ============================================================================


class ErrorCode(str, Enum):
    """Engine error codes."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    INVALID_INPUT = "E1001"

    # Configuration errors (2xxx)
    CONFIGURATION_ERROR = "E2000"
    GAME_NOT_FOUND = "E2001"
    MALFORMED_CATALOG = "E2002"


# ============================================================================
# BASE EXCEPTION
# ============================================================================


class WagerEngineError(Exception):
    """Base exception for the wagering engine."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "field": self.field,
            "details": self.details,
        }


# ============================================================================
# SPECIFIC EXCEPTIONS
# ============================================================================


class ConfigurationError(WagerEngineError):
    """Catalog or settings problem (unknown game, malformed entry)."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message=message, code=code, details=details, field=field)


class GameNotFoundError(ConfigurationError):
    """Game id is absent from the catalog."""

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(
            message=f"Game not found: {game_id}",
            code=ErrorCode.GAME_NOT_FOUND,
            details={"game_id": game_id},
        )


class InvalidInputError(WagerEngineError):
    """Caller supplied a value outside its contract."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            field=field,
            details=details,
        )

    @classmethod
    def from_validation_error(cls, exc: PydanticValidationError, model: str) -> "InvalidInputError":
        """Translate a pydantic validation failure into an engine error."""
        errors = exc.errors(include_url=False)
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        return cls(
            message=f"Invalid {model}: {first.get('msg', 'validation failed')}",
            field=loc or None,
            details={"errors": [
                {"loc": ".".join(str(p) for p in e.get("loc", ())), "msg": e.get("msg")}
                for e in errors
            ]},
        )
