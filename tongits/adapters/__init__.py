"""
Platform adapters for the Tongits engine.

This package provides adapters that translate between the core game engine
and the platforms that carry it to players.
"""

from tongits.adapters.base import PlatformAdapter
from tongits.adapters.dummy import DummyAdapter

__all__ = ["PlatformAdapter", "DummyAdapter"]
