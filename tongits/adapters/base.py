"""
Adapter interface between the Tongits engine and whatever carries the game to
players: a socket server, a terminal, a test harness.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Union
from enum import Enum


class PlatformAdapter(ABC):
    """
    Base interface for platform adapters.

    The engine calls ``render_game_state`` once per seat after every change,
    each time with a snapshot redacted for that seat, and
    ``notify_game_event`` for every event the transitions published since the
    last render. Snapshots are plain dictionaries (see ``GameState.to_dict``)
    and may be sent to the viewer as they are. Rooms, sockets and
    reconnection are the adapter's concern.
    """

    @abstractmethod
    async def render_game_state(
        self, state: Dict[str, Any], viewer_id: Optional[str] = None
    ) -> None:
        """
        Deliver a snapshot to one viewer.

        Args:
            state: Snapshot showing ``viewer_id``'s hand and only the hand
                   counts of other seats while the round is live
            viewer_id: Seat the snapshot was made for; None for spectators
        """

    @abstractmethod
    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Deliver a table event, e.g. ``"FIGHT_CALLED"`` with its data.

        Event data only carries public information (a stock draw never names
        the card), so events may go to every seat.
        """

    async def initialize(self) -> None:
        """Called from ``GameEngine.initialize`` before the table opens."""

    async def shutdown(self) -> None:
        """Called from ``GameEngine.shutdown``; release connections here."""
