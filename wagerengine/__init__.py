"""
WagerEngine — Wagering Outcome & Risk Engine.

Architecture:
    wagerengine/
    ├── config.py        # Pydantic Settings (env / .env)
    ├── exceptions.py    # Typed failures (configuration, invalid input)
    ├── schemas/         # Pydantic models for catalog entries and caller input
    ├── engine/          # Catalog, pattern store, fairness, outcome, odds, difficulty
    ├── behavior/        # Per-player behavior and session tracking
    └── fraud/           # Suspicion indicators and composite risk scoring

Module Boundaries:
    - The engine is a library: it performs no network or storage I/O
    - Randomness and wall-clock time are injected, never hard-wired
    - Every outcome records the sample and probability actually used
    - Shared state is only touched through locked accessors

Data Flow:
    Bet → Behavior Tracker → Fraud Scorer → Fairness → Outcome → Pattern Store
    → Odds / Difficulty / Analytics

Version: 1.0.0
"""

__version__ = "1.0.0"
