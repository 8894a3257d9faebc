"""
Base engine class for the Tongits package.

An engine owns one table: its current immutable state, the platform adapter
the table is rendered through, and its subscription to the event bus.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from tongits.adapters import PlatformAdapter
from tongits.events import EventBus


class GameEngine(ABC):
    """
    Abstract base class for table engines.

    Subclasses replace ``state`` wholesale on every accepted command; nothing
    else may mutate it.
    """

    def __init__(self, adapter: PlatformAdapter, config: Optional[Dict[str, Any]] = None):
        self.adapter = adapter
        self.config = config or {}
        self.event_bus = EventBus.get_instance()
        self.state = None

    @abstractmethod
    async def initialize(self) -> None:
        """Open the table. Subclasses must await this to start the adapter."""
        await self.adapter.initialize()

    @abstractmethod
    async def shutdown(self) -> None:
        """Close the table. Subclasses must await this to stop the adapter."""
        await self.adapter.shutdown()

    @abstractmethod
    async def start_game(self) -> bool:
        """Deal a new round; False if the table cannot start one."""

    @abstractmethod
    async def add_player(self, name: str, **kwargs) -> str:
        """Seat a player and return the seat's ID."""

    @abstractmethod
    def execute_player_action(self, player_id: str, action: Any) -> bool:
        """
        Apply one command from a seat.

        Returns:
            True if the action was applied, False if the rules rejected it
        """

    @abstractmethod
    async def render_state(self) -> None:
        """Push the current state to the adapter."""
