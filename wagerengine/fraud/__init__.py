"""Suspicious-activity screening: pluggable indicators and composite scoring."""
