"""
Game engine for the Tongits package.

This package provides the engine that owns a table's state and connects the
rules to a platform adapter.
"""

from tongits.engine.base import GameEngine
from tongits.engine.tongits import TongitsEngine

__all__ = ["GameEngine", "TongitsEngine"]
