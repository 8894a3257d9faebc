"""
Tongits game engine implementation.

This module provides the TongitsEngine class, which owns the live table state,
turns commands into pure state transitions, renders per-seat snapshots through
a platform adapter, and plays bot seats.
"""

from collections import deque
from dataclasses import fields
from typing import Dict, Any, List, Optional, Sequence
import asyncio
import logging
import random
import time
import uuid

from tongits.adapters import PlatformAdapter
from tongits.engine.base import GameEngine
from tongits.events import EngineEventType
from tongits.game import bot
from tongits.game.actions import (
    Action,
    CallFight,
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    ExposeMeld,
    LayOff,
    action_name,
)
from tongits.game.melds import partition_indices
from tongits.game.state import (
    Difficulty,
    GameState,
    GameStatus,
    PlayerKind,
    PlayerState,
    TongitsRules,
    TurnPhase,
)
from tongits.game.transitions import StateTransitionEngine

logger = logging.getLogger(__name__)

_RULE_FIELDS = [f.name for f in fields(TongitsRules)]

# Oldest events are dropped once this many wait for a render
MAX_PENDING_EVENTS = 500


class TongitsEngine(GameEngine):
    """
    Engine implementation for Tongits.

    Command methods return True when the command was applied and False when
    it was rejected; a rejected command leaves the state untouched. Commands
    are expected one at a time from a single caller.
    """

    def __init__(self, adapter: PlatformAdapter, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the Tongits engine.

        Args:
            adapter: Platform adapter to use for rendering and events
            config: Configuration options for the game
        """
        super().__init__(adapter, config)

        # Apply default configuration
        default_config = {
            "seed": None,  # Seed for shuffles and bot randomness
            "bot_delay": 1.5,  # Seconds before each bot command
            "max_players": 3,
            "starting_chips": 100,
            "ante": 2,
            "hand_size": 12,
            "base_payment": 1,
            "challenged_payment": 3,
            "ace_bonus": 1,
            "secret_meld_bonus": 3,
            "burned_penalty": 1,
            "log_limit": 50,
        }

        # Merge with provided config
        if config:
            default_config.update(config)

        self.config = default_config

        # Create the rules
        self.rules = TongitsRules(**{name: self.config[name] for name in _RULE_FIELDS})
        self.rng = random.Random(self.config["seed"])

        # Initialize the state
        self.state = GameState(rules=self.rules)

        # This table's events, forwarded to the adapter on render
        self._pending_events: deque = deque(maxlen=MAX_PENDING_EVENTS)
        self._unsubscribe = None

    async def initialize(self) -> None:
        """
        Initialize the engine and prepare for a game.
        """
        await super().initialize()

        if self._unsubscribe is None:
            self._unsubscribe = self.event_bus.on_any(self._collect_event)

        self.event_bus.emit(
            EngineEventType.ENGINE_INIT,
            {
                "game_id": self.state.id,
                "engine_type": "tongits",
                "config": self.config,
                "timestamp": time.time(),
            },
        )

    async def shutdown(self) -> None:
        """
        Shut down the engine and clean up resources.
        """
        self.event_bus.emit(
            EngineEventType.ENGINE_SHUTDOWN,
            {"game_id": self.state.id, "timestamp": time.time()},
        )

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._pending_events.clear()

        await super().shutdown()

    def _collect_event(self, event: tuple) -> None:
        """Buffer an event from the shared bus if it belongs to this table."""
        _, data = event
        if isinstance(data, dict) and data.get("game_id") == self.state.id:
            self._pending_events.append(event)

    # Table management

    async def add_player(
        self,
        name: str,
        player_id: Optional[str] = None,
        kind: PlayerKind = PlayerKind.HUMAN,
        difficulty: Optional[Difficulty] = None,
    ) -> str:
        """
        Seat a player at the table.

        Args:
            name: Name of the player
            player_id: ID for the player (generated if omitted)
            kind: Human or bot
            difficulty: Strategy tier for bots

        Returns:
            ID of the added player

        Raises:
            ValueError: If the table is full, a round is live or the ID is taken
        """
        new_state = StateTransitionEngine.add_player(
            self.state, name, player_id=player_id, kind=kind, difficulty=difficulty
        )
        if new_state is self.state:
            raise ValueError(f"Cannot seat {name}: table full, round live or ID taken")

        self.state = new_state
        await self.render_state()
        return self.state.players[-1].id

    async def add_bot(self, difficulty: Difficulty = Difficulty.MEDIUM, name: Optional[str] = None) -> str:
        """Seat a bot, named after its difficulty unless a name is given."""
        name = name or f"Bot {difficulty.value}"
        return await self.add_player(
            name,
            player_id=f"bot-{uuid.uuid4().hex[:9]}",
            kind=PlayerKind.BOT,
            difficulty=difficulty,
        )

    async def remove_player(self, player_id: str) -> bool:
        """
        Remove a player, abandoning any live round.

        Returns:
            True if the player was seated
        """
        if not self._commit(
            player_id, "remove_player", StateTransitionEngine.remove_player(self.state, player_id)
        ):
            return False
        if not any(p.kind == PlayerKind.HUMAN for p in self.state.players):
            logger.info("No human players left at table %s; resetting", self.state.id)
            self.state = StateTransitionEngine.reset(self.state)
        await self.render_state()
        return True

    async def start_game(self) -> bool:
        """
        Start a new round and render it.

        Returns:
            True if the round started
        """
        started = self.start_round()
        if started:
            await self.render_state()
        return started

    # Round commands

    def start_round(self) -> bool:
        return self._commit(None, "start_round", StateTransitionEngine.start_round(self.state, self.rng))

    def draw_from_stock(self, player_id: str) -> bool:
        return self.execute_player_action(player_id, DrawFromStock())

    def draw_from_discard(self, player_id: str, meld_card_indices: Sequence[int]) -> bool:
        return self.execute_player_action(player_id, DrawFromDiscard(tuple(meld_card_indices)))

    def discard(self, player_id: str, card_index: int) -> bool:
        return self.execute_player_action(player_id, Discard(card_index))

    def expose_meld(self, player_id: str, card_indices: Sequence[int]) -> bool:
        return self.execute_player_action(player_id, ExposeMeld(tuple(card_indices)))

    def sapaw(self, player_id: str, target_player_id: str, meld_index: int, card_index: int) -> bool:
        return self.execute_player_action(
            player_id, LayOff(target_player_id, meld_index, card_index)
        )

    def call_fight(self, player_id: str) -> bool:
        return self.execute_player_action(player_id, CallFight())

    def execute_player_action(self, player_id: str, action: Action) -> bool:
        """
        Execute a player action.

        Args:
            player_id: ID of the player
            action: One of the action types in ``tongits.game.actions``

        Returns:
            True if the action was applied, False if it was rejected

        Raises:
            TypeError: If ``action`` is not an action type
        """
        new_state = StateTransitionEngine.apply_action(self.state, player_id, action)
        applied = self._commit(player_id, action_name(action), new_state)
        if applied:
            self.event_bus.emit(
                EngineEventType.PLAYER_ACTION,
                {
                    "game_id": self.state.id,
                    "player_id": player_id,
                    "action": action_name(action),
                    "timestamp": time.time(),
                },
            )
        return applied

    def _commit(self, player_id: Optional[str], command: str, new_state: GameState) -> bool:
        if new_state is self.state:
            logger.debug(
                "Rejected %s from %s (status=%s, phase=%s, turn=%s)",
                command,
                player_id,
                self.state.status.value,
                self.state.phase.value,
                self.state.turn_index,
            )
            self.event_bus.emit(
                EngineEventType.ACTION_REJECTED,
                {
                    "game_id": self.state.id,
                    "player_id": player_id,
                    "action": command,
                    "timestamp": time.time(),
                },
            )
            return False
        self.state = new_state
        return True

    # Queries

    def get_state_for(self, viewer_id: Optional[str], omniscient: bool = False) -> Dict[str, Any]:
        """
        Snapshot of the table for one viewer.

        Args:
            viewer_id: Seat whose hand is shown in full
            omniscient: Reveal every hand; for hard bot decisions only, never
                        for a human viewer

        Returns:
            Serializable dictionary of the state
        """
        return self.state.to_dict(viewer_id=viewer_id, omniscient=omniscient)

    def get_valid_actions(self, player_id: str) -> Dict[str, List[Any]]:
        """
        Get valid actions for a player.

        Args:
            player_id: ID of the player

        Returns:
            Dictionary mapping action names to their available parameters;
            empty when it is not the player's turn
        """
        player = self.state.current_player
        if not self.state.is_playing or player is None or player.id != player_id:
            return {}

        valid_actions: Dict[str, List[Any]] = {}

        if self.state.phase == TurnPhase.DRAW:
            valid_actions["draw_stock"] = []
            pickup = bot.discard_pickup(player.hand, self.state.discard_pile)
            if pickup:
                valid_actions["draw_discard"] = [pickup.hand_indices]
            return valid_actions

        valid_actions["discard"] = list(range(len(player.hand)))
        melds = partition_indices(player.hand)
        if melds:
            valid_actions["expose"] = [tuple(meld) for meld in melds]
        lay_offs = bot.lay_off_options(player, self.state)
        if lay_offs:
            valid_actions["sapaw"] = lay_offs
        if player.can_call_fight:
            valid_actions["fight"] = []
        return valid_actions

    def is_round_over(self) -> bool:
        return self.state.status == GameStatus.ENDED

    def get_winner(self) -> Optional[str]:
        """
        Get the ID of the last round's winner.

        Returns:
            ID of the winning player, or None if no round has ended
        """
        if self.state.round_results is None:
            return None
        return self.state.round_results.winner_id

    async def render_state(self) -> None:
        """
        Forward pending events and render each seat its own snapshot.
        """
        events = list(self._pending_events)
        self._pending_events.clear()
        for event_type, data in events:
            await self.adapter.notify_game_event(event_type, data)

        if not self.state.players:
            await self.adapter.render_game_state(self.get_state_for(None), None)
            return
        for player in self.state.players:
            await self.adapter.render_game_state(self.get_state_for(player.id), player.id)

    # Bots

    def _bot_view(self, player: PlayerState) -> GameState:
        if player.difficulty == Difficulty.HARD:
            return self.state
        return self.state.redacted_for(player.id)

    async def play_bot_turn(self) -> bool:
        """
        Let the active seat take one command if it is a bot.

        A decision the transitions reject is replaced by drawing from the
        stock or discarding the first card, so a bot turn always moves the
        round forward.

        Returns:
            True if a command was applied
        """
        player = self.state.current_player
        if not self.state.is_playing or player is None or not player.is_bot:
            return False

        view = self._bot_view(player)
        action = bot.decide(view.get_player(player.id), view, self.rng)

        self.event_bus.emit(
            EngineEventType.BOT_DECISION,
            {
                "game_id": self.state.id,
                "player_id": player.id,
                "difficulty": player.difficulty.value if player.difficulty else None,
                "phase": self.state.phase.value,
                "action": action_name(action) if action else None,
                "timestamp": time.time(),
            },
        )

        applied = action is not None and self.execute_player_action(player.id, action)
        if not applied:
            logger.warning(
                "Bot %s could not apply %r in %s phase; falling back",
                player.name,
                action,
                self.state.phase.value,
            )
            fallback = DrawFromStock() if self.state.phase == TurnPhase.DRAW else Discard(0)
            applied = self.execute_player_action(player.id, fallback)

        await self.render_state()
        return applied

    async def run_bot_turns(self, delay: Optional[float] = None) -> int:
        """
        Play bot seats until a human is to act or the round is over.

        Each bot command waits ``delay`` seconds first (the ``bot_delay``
        config by default). Cancel the task running this coroutine to stop
        pending bot turns, e.g. when a player disconnects.

        Returns:
            Number of bot commands applied
        """
        delay = self.config["bot_delay"] if delay is None else delay
        commands = 0
        while self.state.is_playing:
            player = self.state.current_player
            if player is None or not player.is_bot:
                break
            await asyncio.sleep(delay)
            if not await self.play_bot_turn():
                break
            commands += 1
        return commands
