"""
Wagering Decision Engine — outcome generation and game tuning.

Components:
- randomness: Injectable uniform [0, 1) sources (system, seeded, HMAC provably-fair)
- clock: Injectable wall-clock for timestamps and session boundaries
- catalog: Immutable per-game configuration
- pattern_store: Bounded per-game FIFO history of outcomes
- fairness: Streak-based probability adjustment + house-edge telemetry
- outcome: Win/lose decision and payout for a single bet
- odds: Display odds from history, volume and short-term trend
- difficulty: Skill-based difficulty / multiplier tuning
- analytics: Per-game summaries over stored history
- wagering_engine: Orchestrates the per-bet flow
"""
