"""
Event system for the Tongits engine.

Transitions announce what happened at the table on a process-wide bus. The
engine forwards everything it hears to its platform adapter, and tests and
tools subscribe to the event types they care about.

Handlers run synchronously inside ``emit``, highest priority first. A handler
that raises is logged and skipped; the transition that emitted the event is
never interrupted by it.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import threading
import logging
from enum import Enum

# Create a logger for the event system
logger = logging.getLogger("tongits.events")

EventKey = Union[str, Enum]


class EventPriority(Enum):
    """Priority levels for event handlers."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


@dataclass(frozen=True)
class _Subscription:
    callback: Callable
    priority: int


def event_name(event_type: EventKey) -> str:
    """Enum event types are keyed by member name, so both spellings match."""
    return event_type.name if isinstance(event_type, Enum) else event_type


def _insert(subscriptions: List[_Subscription], new: _Subscription) -> None:
    # Equal priorities keep subscription order
    for i, existing in enumerate(subscriptions):
        if existing.priority < new.priority:
            subscriptions.insert(i, new)
            return
    subscriptions.append(new)


def _discard(subscriptions: List[_Subscription], callback: Callable) -> None:
    for i, existing in enumerate(subscriptions):
        if existing.callback == callback:
            del subscriptions[i]
            return


class EventEmitter:
    """
    Event emitter for the Tongits engine.

    Features:
    - Subscriptions per event type, ordered by priority
    - Once-only subscriptions
    - Catch-all subscriptions receiving ``(event_name, data)``
    - Thread-safe subscription and emission
    """

    def __init__(self):
        self._listeners: Dict[str, List[_Subscription]] = defaultdict(list)
        self._global_listeners: List[_Subscription] = []
        self._listener_lock = threading.RLock()

    def on(
        self,
        event_type: EventKey,
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to subscribe to (string or enum)
            callback: Function to call when event occurs, signature: fn(event_data)
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        return self._subscribe(
            self._listeners[event_name(event_type)], callback, priority
        )

    def once(
        self,
        event_type: EventKey,
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Subscribe to the next occurrence of an event type only.

        Returns:
            Unsubscribe function for the pending subscription
        """
        unsubscribe: Optional[Callable] = None

        def one_time_handler(event_data):
            try:
                callback(event_data)
            finally:
                unsubscribe()

        unsubscribe = self.on(event_type, one_time_handler, priority)
        return unsubscribe

    def on_any(
        self, callback: Callable, priority: EventPriority = EventPriority.NORMAL
    ) -> Callable:
        """
        Subscribe to all events.

        Args:
            callback: Function to call for any event, signature: fn((event_name, event_data))
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        return self._subscribe(self._global_listeners, callback, priority)

    def _subscribe(
        self,
        subscriptions: List[_Subscription],
        callback: Callable,
        priority: EventPriority,
    ) -> Callable:
        with self._listener_lock:
            _insert(subscriptions, _Subscription(callback, priority.value))

        def unsubscribe():
            with self._listener_lock:
                _discard(subscriptions, callback)

        return unsubscribe

    def listener_count(self, event_type: Optional[EventKey] = None) -> int:
        """Handlers that would receive ``event_type``, or catch-all handlers if None."""
        with self._listener_lock:
            if event_type is None:
                return len(self._global_listeners)
            return len(self._listeners.get(event_name(event_type), [])) + len(
                self._global_listeners
            )

    def emit(self, event_type: EventKey, data: Dict[str, Any]) -> None:
        """
        Emit an event to all registered listeners.

        Args:
            event_type: The type of event to emit
            data: The data to include with the event
        """
        name = event_name(event_type)

        with self._listener_lock:
            calls: List[Tuple[Callable, Any]] = [
                (sub.callback, data) for sub in self._listeners.get(name, [])
            ]
            calls += [(sub.callback, (name, data)) for sub in self._global_listeners]

        # Call handlers outside of the lock so they may subscribe or emit
        for callback, payload in calls:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Error in event handler for {name}: {e}", exc_info=True)

    def remove_all_listeners(self, event_type: Optional[EventKey] = None) -> None:
        """
        Remove all listeners for a specific event type or all events.

        Args:
            event_type: Optional event type. If None, removes all listeners for all events.
        """
        with self._listener_lock:
            if event_type is None:
                self._listeners.clear()
                self._global_listeners.clear()
            else:
                self._listeners.pop(event_name(event_type), None)


class EventBus:
    """
    Process-wide event bus.

    Transitions are pure functions with no engine to hand, so they publish
    here; ``get_instance`` returns the shared emitter.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> EventEmitter:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = EventEmitter()
        return cls._instance


class EngineEventType(Enum):
    """
    Event types published by the Tongits transitions and engine.

    Event data always carries ``game_id`` (the table ID) and ``timestamp``.
    """

    # Engine lifecycle
    ENGINE_INIT = "engine_init"
    ENGINE_SHUTDOWN = "engine_shutdown"

    # Table and round lifecycle
    TABLE_RESET = "table_reset"
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"

    # Seats
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    PLAYER_ACTION = "player_action"
    ACTION_REJECTED = "action_rejected"

    # Cards and melds
    CARD_DRAWN = "card_drawn"
    CARD_DISCARDED = "card_discarded"
    MELD_EXPOSED = "meld_exposed"
    CARD_LAID_OFF = "card_laid_off"
    FIGHT_CALLED = "fight_called"
    STOCK_EXHAUSTED = "stock_exhausted"

    # Chips
    ANTE_COLLECTED = "ante_collected"
    CHIPS_SETTLED = "chips_settled"

    # Bots
    BOT_DECISION = "bot_decision"
