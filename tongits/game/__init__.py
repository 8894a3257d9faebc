"""
Tongits game module.

This module provides the rules of Tongits: meld recognition, immutable state
models, pure state transitions, settlement, and the bot decision engine.
"""

from tongits.game.state import (
    GameState as GameState,
    PlayerState as PlayerState,
    Meld as Meld,
    RoundResult as RoundResult,
    TongitsRules as TongitsRules,
    GameStatus as GameStatus,
    TurnPhase as TurnPhase,
    PlayerKind as PlayerKind,
    Difficulty as Difficulty,
    EndType as EndType,
)
from tongits.game.transitions import StateTransitionEngine as StateTransitionEngine
from tongits.game import bot as bot

__all__ = [
    "GameState",
    "PlayerState",
    "Meld",
    "RoundResult",
    "TongitsRules",
    "GameStatus",
    "TurnPhase",
    "PlayerKind",
    "Difficulty",
    "EndType",
    "StateTransitionEngine",
    "bot",
]
