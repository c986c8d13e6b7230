"""Per-player behavior tracking for responsible-gaming risk flags."""
