"""
Pytest configuration for the test suite.

This module contains the event bus reset shared by every test and a factory
fixture for building mid-round table states from card strings.
"""

import pytest

from tongits.common.card import cards_from_str
from tongits.common.deck import Deck
from tongits.events import EventBus
from tongits.game.state import (
    GameState,
    GameStatus,
    Meld,
    PlayerKind,
    PlayerState,
    TurnPhase,
)


# Reset event bus before each test
@pytest.fixture(scope="function", autouse=True)
def reset_event_bus():
    """Reset the event bus singleton before each test."""
    EventBus._instance = None
    yield
    EventBus._instance = None


@pytest.fixture
def make_state():
    """
    Build a live three-seat state.

    ``hands`` holds one card string per seat ("7♠ 7♥ 7♦"), ``melds`` one list
    of card strings per seat. Cards not placed anywhere form the stock unless
    ``deck`` is given, so the 52-card total holds.
    """

    def _make(
        hands,
        melds=None,
        discard="",
        deck=None,
        turn_index=0,
        phase=TurnPhase.ACTION,
        kinds=None,
        difficulties=None,
        has_opened=None,
        opened_this_turn=None,
        sapawed=None,
        chips=100,
        side_pot=6,
    ):
        melds = melds or [[], [], []]
        kinds = kinds or [PlayerKind.HUMAN] * 3
        difficulties = difficulties or [None] * 3
        players = []
        used = []
        for i in range(3):
            hand = cards_from_str(hands[i])
            exposed = [
                Meld(
                    cards=cards_from_str(text),
                    is_sapawed_by_others=bool(sapawed and sapawed[i]),
                )
                for text in melds[i]
            ]
            used += hand + [c for meld in exposed for c in meld.cards]
            opened = has_opened[i] if has_opened else bool(exposed)
            players.append(
                PlayerState(
                    id=f"p{i + 1}",
                    name=f"Player {i + 1}",
                    kind=kinds[i],
                    difficulty=difficulties[i],
                    hand=hand,
                    exposed_melds=exposed,
                    chips=chips,
                    has_opened=opened,
                    opened_this_turn=bool(opened_this_turn and opened_this_turn[i]),
                )
            )
        discard_pile = cards_from_str(discard)
        used += discard_pile
        if deck is None:
            stock = [c for c in Deck().cards if c not in set(used)]
        else:
            stock = cards_from_str(deck)
        return GameState(
            players=players,
            deck=stock,
            discard_pile=discard_pile,
            turn_index=turn_index,
            phase=phase,
            status=GameStatus.PLAYING,
            side_pot=side_pot,
            round_number=1,
        )

    return _make


@pytest.fixture
def bot_kinds():
    return [PlayerKind.BOT] * 3
