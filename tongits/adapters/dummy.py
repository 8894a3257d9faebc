"""
Recording adapter for tests and bot-only simulations.

Nothing is sent anywhere: snapshots and events are kept in memory in the order
the engine produced them. With ``verbose=True`` they are also printed, which
is enough to follow a simulated round in a terminal.
"""

from typing import List, Dict, Any, Optional, Tuple, Union
from enum import Enum

from tongits.adapters.base import PlatformAdapter


def _name(event_type: Union[str, Enum]) -> str:
    return event_type.name if isinstance(event_type, Enum) else event_type


def _cards(cards: List[Dict[str, Any]]) -> str:
    return " ".join(f"{card['rank']}{card['suit']}" for card in cards)


class DummyAdapter(PlatformAdapter):
    """
    Adapter that records what the engine renders.

    Attributes:
        events: ``(event_name, data)`` pairs, oldest first
        rendered_states: ``(viewer_id, snapshot)`` pairs, oldest first
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.rendered_states: List[Tuple[Optional[str], Dict[str, Any]]] = []

    async def render_game_state(
        self, state: Dict[str, Any], viewer_id: Optional[str] = None
    ) -> None:
        self.rendered_states.append((viewer_id, state))

        if self.verbose:
            print(
                f"\n--- {viewer_id or 'spectator'}: {state['status']}/{state['phase']}, "
                f"stock {state['stockCount']}, pot {state['sidePot']}"
            )
            for seat in state["players"]:
                melds = " | ".join(_cards(meld["cards"]) for meld in seat["exposedMelds"])
                print(
                    f"  {seat['name']} [{seat['chips']}] {seat['handCount']} cards: "
                    f"{_cards(seat['hand']) or '??'}" + (f"  melds: {melds}" if melds else "")
                )

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        name = _name(event_type)
        self.events.append((name, data))

        if self.verbose:
            details = ", ".join(f"{k}={v}" for k, v in data.items() if k != "timestamp")
            print(f"* {name}: {details}")

    def get_events_by_type(self, event_type: Union[str, Enum]) -> List[Dict[str, Any]]:
        """Data of every recorded event of one type."""
        name = _name(event_type)
        return [data for recorded, data in self.events if recorded == name]

    def event_names(self) -> List[str]:
        return [name for name, _ in self.events]

    def states_for(self, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        """All snapshots rendered for one viewer, oldest first."""
        return [state for viewer, state in self.rendered_states if viewer == viewer_id]

    def clear(self) -> None:
        self.events.clear()
        self.rendered_states.clear()
