"""
Event system for the Tongits engine.

This package provides the event bus that transitions publish to and that
engines and adapters subscribe to.
"""

from tongits.events.emitter import (
    EventEmitter,
    EventBus,
    EventPriority,
    EngineEventType,
)

__all__ = ["EventEmitter", "EventBus", "EventPriority", "EngineEventType"]
