"""Event system for the garden simulation.

A small pub/sub bus used by the engine and the control subsystems to
publish lifecycle and domain events. Observers (UIs, test harnesses,
journals) subscribe to event types instead of polling.

Events are used for:
- Edge-triggered reactions between subsystems (weather -> sprinklers)
- Lifecycle notifications (start, pause, stop, day rollover)
- Observability of control decisions (watering, heating, treatments)
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Standard event types for the garden simulation."""

    # Simulation lifecycle
    SIMULATION_START = "simulation.start"
    SIMULATION_PAUSE = "simulation.pause"
    SIMULATION_RESUME = "simulation.resume"
    SIMULATION_STOP = "simulation.stop"
    SIMULATION_TICK = "simulation.tick"
    SIMULATION_ERROR = "simulation.error"
    DAY_ADVANCED = "simulation.day_advanced"

    # Garden edits
    PLANT_ADDED = "garden.plant_added"
    PLANT_REMOVED = "garden.plant_removed"

    # Weather
    WEATHER_CHANGED = "weather.changed"

    # Irrigation
    ZONE_WATERED = "watering.zone_watered"
    WATER_SUPPLY_LOW = "watering.supply_low"
    WATER_REFILLED = "watering.refilled"

    # Thermal regulation
    THERMAL_MODE_CHANGED = "thermal.mode_changed"

    # Pest control
    PEST_SPAWNED = "pest.spawned"
    TREATMENT_SCHEDULED = "pest.treatment_scheduled"
    TREATMENT_APPLIED = "pest.treatment_applied"
    PESTICIDE_DEPLETED = "pest.pesticide_depleted"
    PESTICIDE_REFILLED = "pest.pesticide_refilled"

    # Custom events
    CUSTOM = "custom"


def _event_key(event_type: EventType | str) -> str:
    return event_type.value if isinstance(event_type, EventType) else event_type


@dataclass
class Event:
    """An event in the simulation.

    Attributes:
        event_type: Type of event.
        timestamp: When the event occurred (simulated time when emitted
            by the engine or a subsystem).
        source: Name of the component/system that generated the event.
        data: Event-specific data payload.
        message: Human-readable description of the event.
    """

    event_type: EventType | str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    source: str = "system"
    data: dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __str__(self) -> str:
        """String representation of the event."""
        return (
            f"[{self.timestamp.isoformat()}] {_event_key(self.event_type)} "
            f"from {self.source}: {self.message}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event.
        """
        return {
            "event_type": _event_key(self.event_type),
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "data": self.data,
            "message": self.message,
        }


# Type alias for event handlers
EventHandler = Callable[[Event], None]


class EventBus:
    """Pub/sub bus for simulation events.

    Handlers are called synchronously on the emitting thread. Within an
    engine that is always the owner thread of the garden, so handlers may
    touch garden state.
    """

    def __init__(self, *, max_history: int = 1000) -> None:
        """Initialize event bus.

        Args:
            max_history: Maximum number of events to keep in history.
        """
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=max_history)
        self._clock: Callable[[], datetime] | None = None

    def set_clock(self, clock: Callable[[], datetime] | None) -> None:
        """Use clock to timestamp events created by emit_simple().

        Args:
            clock: Callable returning the current (simulated) time, or None
                to fall back to wall-clock UTC.
        """
        self._clock = clock

    def subscribe(
        self,
        event_type: EventType | str,
        handler: EventHandler,
    ) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: Type of events to subscribe to.
            handler: Callback function to invoke when event occurs.
        """
        key = _event_key(event_type)
        if handler not in self._handlers[key]:
            self._handlers[key].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events.

        Args:
            handler: Callback function to invoke for any event.
        """
        self.subscribe("*", handler)

    def unsubscribe(
        self,
        event_type: EventType | str,
        handler: EventHandler,
    ) -> bool:
        """Unsubscribe from events.

        Args:
            event_type: Type of events to unsubscribe from.
            handler: The handler to remove.

        Returns:
            True if handler was found and removed.
        """
        key = _event_key(event_type)
        if handler in self._handlers[key]:
            self._handlers[key].remove(handler)
            return True
        return False

    def emit(self, event: Event) -> None:
        """Emit an event to all subscribers.

        A handler that raises is logged and skipped; the remaining
        handlers still receive the event.

        Args:
            event: The event to emit.
        """
        self._history.append(event)
        event_key = _event_key(event.event_type)

        for handler in [*self._handlers[event_key], *self._handlers["*"]]:
            try:
                handler(event)
            except Exception:
                handler_name = getattr(handler, "__name__", str(handler))
                logger.exception(
                    "Event handler '%s' failed processing %s event from %s",
                    handler_name,
                    event_key,
                    event.source,
                )

    def emit_simple(
        self,
        event_type: EventType | str,
        source: str,
        message: str = "",
        **data: Any,
    ) -> Event:
        """Emit an event with simpler syntax.

        Args:
            event_type: Type of event.
            source: Event source name.
            message: Human-readable message.
            **data: Event data as keyword arguments.

        Returns:
            The emitted event.
        """
        event = Event(
            event_type=event_type,
            source=source,
            message=message,
            data=data,
        )
        if self._clock is not None:
            event.timestamp = self._clock()
        self.emit(event)
        return event

    def _iter_history_filtered(
        self,
        event_type: EventType | str | None = None,
        source: str | None = None,
    ) -> Iterator[Event]:
        type_key = _event_key(event_type) if event_type is not None else None
        for event in self._history:
            if type_key is not None and _event_key(event.event_type) != type_key:
                continue
            if source is not None and event.source != source:
                continue
            yield event

    def get_history(
        self,
        event_type: EventType | str | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """Get event history with optional filtering.

        Args:
            event_type: Filter by event type.
            source: Filter by source.
            limit: Maximum number of events to return.

        Returns:
            List of events matching filters (most recent last).
        """
        filtered = list(self._iter_history_filtered(event_type, source))
        if limit is not None:
            return filtered[-limit:]
        return filtered

    def clear_history(self) -> None:
        """Clear event history."""
        self._history.clear()

    def clear_handlers(self) -> None:
        """Remove all event handlers."""
        self._handlers.clear()

    def clear(self) -> None:
        """Clear both history and handlers."""
        self.clear_history()
        self.clear_handlers()


# Global event bus instance
_global_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus.

    Subsystems constructed without an explicit bus publish here. Engines
    create their own bus so that two gardens never see each other's events.

    Returns:
        The global EventBus instance.
    """
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus


def reset_event_bus() -> None:
    """Reset the global event bus.

    Primarily useful for testing.
    """
    global _global_bus
    _global_bus = None
