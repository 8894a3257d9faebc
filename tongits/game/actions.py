"""
Player actions for Tongits.

Each command a seat can issue is its own frozen dataclass, so a decision from
a bot and a request from a human travel through the engine the same way.
"""

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class DrawFromStock:
    """Take the top card of the stock."""


@dataclass(frozen=True)
class DrawFromDiscard:
    """Take the top discard and expose it at once with these hand cards."""

    hand_indices: Tuple[int, ...]


@dataclass(frozen=True)
class Discard:
    card_index: int


@dataclass(frozen=True)
class ExposeMeld:
    card_indices: Tuple[int, ...]


@dataclass(frozen=True)
class LayOff:
    """Sapaw: add one hand card to an exposed meld, own or an opponent's."""

    target_player_id: str
    meld_index: int
    card_index: int


@dataclass(frozen=True)
class CallFight:
    """End the round in a showdown of unmelded hand weight."""


Action = Union[DrawFromStock, DrawFromDiscard, Discard, ExposeMeld, LayOff, CallFight]


def action_name(action: Action) -> str:
    """Short name of an action for logs and events, e.g. ``"lay_off"``."""
    return {
        DrawFromStock: "draw_stock",
        DrawFromDiscard: "draw_discard",
        Discard: "discard",
        ExposeMeld: "expose",
        LayOff: "lay_off",
        CallFight: "fight",
    }[type(action)]
