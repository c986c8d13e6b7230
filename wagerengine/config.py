"""
WagerEngine Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "WagerEngine"
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # ── Game Catalog ───────────────────────────────────────────────────────
    game_catalog_path: Optional[str] = Field(
        default=None, alias="GAME_CATALOG_PATH",
        description="JSON catalog file; the built-in catalog is used when unset",
    )

    # ── Randomness ─────────────────────────────────────────────────────────
    rng_backend: Literal["system", "seeded", "hmac"] = Field(default="system", alias="RNG_BACKEND")
    rng_seed: Optional[int] = Field(default=None, alias="RNG_SEED")
    rng_server_seed: str = Field(default="", alias="RNG_SERVER_SEED")
    rng_client_seed: str = Field(default="", alias="RNG_CLIENT_SEED")

    # ── Fairness ───────────────────────────────────────────────────────────
    house_edge: float = Field(default=0.05, gt=0.0, lt=1.0, alias="HOUSE_EDGE")
    fairness_drift_tolerance: float = Field(default=0.02, ge=0.0, alias="FAIRNESS_DRIFT_TOLERANCE")
    loss_streak_threshold: int = Field(default=5, ge=0, alias="LOSS_STREAK_THRESHOLD")
    win_streak_threshold: int = Field(default=3, ge=0, alias="WIN_STREAK_THRESHOLD")
    loss_streak_boost: float = Field(default=0.05, ge=0.0, alias="LOSS_STREAK_BOOST")
    win_streak_penalty: float = Field(default=0.03, ge=0.0, alias="WIN_STREAK_PENALTY")
    probability_ceiling: float = Field(default=0.55, gt=0.0, lt=1.0, alias="PROBABILITY_CEILING")
    probability_floor: float = Field(default=0.35, gt=0.0, lt=1.0, alias="PROBABILITY_FLOOR")

    # ── Pattern Store / Odds ───────────────────────────────────────────────
    pattern_capacity: int = Field(default=1000, ge=1, alias="PATTERN_CAPACITY")
    odds_sample_size: int = Field(default=100, ge=1, alias="ODDS_SAMPLE_SIZE")
    odds_trend_window: int = Field(default=10, ge=1, alias="ODDS_TREND_WINDOW")
    odds_min: float = Field(default=1.1, gt=0.0, alias="ODDS_MIN")
    odds_max: float = Field(default=10.0, gt=0.0, alias="ODDS_MAX")
    high_volume_threshold: float = Field(default=10_000.0, ge=0.0, alias="HIGH_VOLUME_THRESHOLD")
    low_volume_threshold: float = Field(default=1_000.0, ge=0.0, alias="LOW_VOLUME_THRESHOLD")

    # ── Behavior Tracking ──────────────────────────────────────────────────
    session_gap_minutes: float = Field(default=30.0, gt=0.0, alias="SESSION_GAP_MINUTES")
    high_risk_avg_bet: float = Field(default=1000.0, ge=0.0, alias="HIGH_RISK_AVG_BET")
    high_risk_session_loss: float = Field(default=5000.0, ge=0.0, alias="HIGH_RISK_SESSION_LOSS")
    medium_risk_avg_bet: float = Field(default=500.0, ge=0.0, alias="MEDIUM_RISK_AVG_BET")
    medium_risk_session_loss: float = Field(default=2000.0, ge=0.0, alias="MEDIUM_RISK_SESSION_LOSS")

    # ── Fraud Scoring ──────────────────────────────────────────────────────
    indicator_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="FRAUD_INDICATOR_WEIGHT")
    suspicious_threshold: float = Field(default=0.7, ge=0.0, le=1.0, alias="FRAUD_SUSPICIOUS_THRESHOLD")
    suspend_threshold: float = Field(default=0.8, ge=0.0, le=1.0, alias="FRAUD_SUSPEND_THRESHOLD")
    monitor_threshold: float = Field(default=0.6, ge=0.0, le=1.0, alias="FRAUD_MONITOR_THRESHOLD")
    unusual_bet_multiplier: float = Field(default=10.0, gt=0.0, alias="UNUSUAL_BET_MULTIPLIER")
    rapid_betting_window_seconds: float = Field(default=60.0, gt=0.0, alias="RAPID_BETTING_WINDOW_SECONDS")
    rapid_betting_max_bets: Optional[int] = Field(
        default=None, ge=0, alias="RAPID_BETTING_MAX_BETS",
        description="Bets allowed per window; rapid-betting detection is off when unset",
    )
    known_fraud_signatures: list[str] = Field(default_factory=list, alias="KNOWN_FRAUD_SIGNATURES")
    blocked_user_agents: list[str] = Field(default_factory=list, alias="BLOCKED_USER_AGENTS")
    blocked_ip_prefixes: list[str] = Field(default_factory=list, alias="BLOCKED_IP_PREFIXES")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="console", alias="LOG_FORMAT")

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        """Ordered pairs must stay ordered (floor <= ceiling, monitor <= suspend, ...)."""
        pairs = (
            ("probability_floor", "probability_ceiling"),
            ("odds_min", "odds_max"),
            ("low_volume_threshold", "high_volume_threshold"),
            ("medium_risk_avg_bet", "high_risk_avg_bet"),
            ("medium_risk_session_loss", "high_risk_session_loss"),
            ("monitor_threshold", "suspend_threshold"),
        )
        for low, high in pairs:
            if getattr(self, low) > getattr(self, high):
                raise ValueError(f"{low} must not exceed {high}")
        return self


settings = Settings()
