"""
Base class for tick-driven simulations.

Provides the shared infrastructure used by force simulations:
- Event system (tick/restructure events)
- Random seed management (numpy Generator owned by the instance)
- Iteration loop over update()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .types import Event, EventCallback, EventType
from .validation import InvalidParameterError


class IterativeSimulation(ABC):
    """
    Abstract base class for simulations advanced one tick at a time.

    Example:
        sim = SomeSimulation(on_tick=lambda event: print(event["tick"]))
        sim.run(100)
    """

    def __init__(
        self,
        *,
        random_seed: Optional[int] = None,
        on_tick: Optional[EventCallback] = None,
        on_restructure: Optional[EventCallback] = None,
    ) -> None:
        """
        Initialize simulation infrastructure.

        Args:
            random_seed: Seed for the instance's random generator (None = entropy)
            on_tick: Callback for tick event
            on_restructure: Callback for restructure event
        """
        self._events: dict[EventType, EventCallback] = {}
        self._random_seed: Optional[int] = random_seed
        self._rng: np.random.Generator = np.random.default_rng(random_seed)
        self._ticks: int = 0

        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_restructure:
            self._events[EventType.restructure] = on_restructure

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def random_seed(self) -> Optional[int]:
        """Get random seed for reproducible runs."""
        return self._random_seed

    @random_seed.setter
    def random_seed(self, value: Optional[int]) -> None:
        """Set random seed and reset the random generator."""
        self._random_seed = value
        self._rng = np.random.default_rng(value)

    @property
    def rng(self) -> np.random.Generator:
        """Random generator owned by this simulation."""
        return self._rng

    @property
    def ticks(self) -> int:
        """Number of completed updates."""
        return self._ticks

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: EventCallback) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Trigger an event, calling the registered callback."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def update(self, elapsed: Optional[float] = None) -> None:
        """
        Advance the simulation by one tick.

        Args:
            elapsed: Time since the previous tick (informational)
        """
        pass

    def run(self, iterations: int = 1) -> Self:
        """
        Call update() repeatedly.

        Raises:
            InvalidParameterError: If iterations < 1
        """
        if iterations < 1:
            raise InvalidParameterError(f"iterations must be >= 1, got {iterations}")
        for _ in range(iterations):
            self.update()
        return self


__all__ = ["IterativeSimulation"]
