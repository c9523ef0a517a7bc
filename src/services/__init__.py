"""Composition of the engine's repositories and services."""

from src.services.engine import ContentEngine

__all__ = ["ContentEngine"]
