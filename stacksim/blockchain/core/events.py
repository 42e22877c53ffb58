"""
Lifecycle notifications published by a Simnet.

Listeners are plain callables taking keyword arguments:

- TX_APPLIED: txid, height, ok (bool), result (rendered Clarity value)
- BLOCK_MINED: height, hash, tx_count

Delivery is synchronous, in subscription order.
"""
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional
import logging

logger = logging.getLogger(__name__)

TX_APPLIED = "tx_applied"
BLOCK_MINED = "block_mined"

Listener = Callable[..., None]


class EventBus:
    def __init__(self):
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], bool]:
        """Adds `listener` for `event`. Returns a function that removes it again."""
        self._listeners[event].append(listener)
        logger.debug(f"Listener added for {event} ({len(self._listeners[event])} total)")
        return lambda: self.unsubscribe(event, listener)

    def unsubscribe(self, event: str, listener: Listener) -> bool:
        registered = self._listeners.get(event, [])
        if listener not in registered:
            logger.warning(f"Listener not registered for {event}")
            return False
        registered.remove(listener)
        return True

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, **payload: Any) -> int:
        """
        Calls every listener of `event` with `payload`.

        A listener that raises is logged and skipped; the simnet operation
        that emitted the event is never interrupted. Returns the number of
        listeners that ran without error.
        """
        delivered = 0
        # Listeners may unsubscribe themselves while being called
        for listener in tuple(self._listeners.get(event, ())):
            try:
                listener(**payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Listener for {event} failed: {e}", exc_info=True)
        return delivered

    def clear(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)


# Shared by simnets created without their own bus
event_bus = EventBus()
