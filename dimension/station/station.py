"""Station — explicitly constructed observability context.

A Station holds:
  - the dimensions it observes (and through them, their matches)
  - a set of subscriber queues for fan-out of match status events

Whoever builds the Station owns it; nothing here is a process-wide global.
Everything exposed is a read-only snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dimension.dimension import Dimension

logger = logging.getLogger(__name__)


class Station:
    """Registry of observed dimensions and status-event broadcast hub."""

    def __init__(self, name: str = "Dimension Station") -> None:
        self.name = name
        self._dimensions: dict[str, Dimension] = {}
        # Each subscriber gets its own queue
        self._subscribers: list[asyncio.Queue[dict[str, Any]]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def observe(self, dimension: Dimension) -> None:
        self._dimensions[dimension.id] = dimension
        logger.debug("%s observing dimension %s", self.name, dimension.name)

    def unobserve(self, dimension: Dimension) -> None:
        self._dimensions.pop(dimension.id, None)

    def list_dimensions(self) -> list[dict[str, Any]]:
        return [dim.to_dict() for dim in self._dimensions.values()]

    def get_dimension(self, dimension_id: str) -> dict[str, Any] | None:
        dim = self._dimensions.get(dimension_id)
        return dim.to_dict() if dim is not None else None

    def list_matches(self, dimension_id: str) -> list[dict[str, Any]] | None:
        dim = self._dimensions.get(dimension_id)
        if dim is None:
            return None
        return [match.to_dict() for match in dim.matches.values()]

    def get_match(self, dimension_id: str, match_id: str) -> dict[str, Any] | None:
        dim = self._dimensions.get(dimension_id)
        if dim is None:
            return None
        match = dim.matches.get(match_id)
        return match.to_dict() if match is not None else None

    # ------------------------------------------------------------------
    # Subscriber management (fan-out)
    # ------------------------------------------------------------------

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        q: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[dict[str, Any]]) -> None:
        try:
            self._subscribers.remove(q)
        except ValueError:
            pass

    def publish(self, event: dict[str, Any]) -> None:
        """Deliver *event* to every subscriber without blocking the publisher."""
        for q in self._subscribers:
            q.put_nowait(event)
