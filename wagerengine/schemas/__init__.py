"""Pydantic models for catalog entries and caller-supplied bet input."""
