"""
Overlay Store

Observable copy-on-write container for the registry's slot map. Every
mutation installs a brand-new read-only mapping, so a reader holding the
previous mapping never sees a partial update. Subscribers are notified
synchronously after each replacement.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Generic, TypeVar
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")

StoreHandler = Callable[[Mapping[str, V]], None]


@dataclass
class StoreSubscription(Generic[V]):
    """Represents a state subscription."""
    id: str
    handler: StoreHandler


class OverlayStore(Generic[V]):
    """Holds the current ``slot_id -> record`` mapping."""

    def __init__(self, initial: Mapping[str, V] | None = None):
        self._state: Mapping[str, V] = MappingProxyType(dict(initial or {}))
        self._subscriptions: dict[str, StoreSubscription[V]] = {}
        self._version = 0
        self._logger = logger.bind(component="overlay_store")

    @property
    def state(self) -> Mapping[str, V]:
        """Current immutable mapping."""
        return self._state

    @property
    def version(self) -> int:
        """Number of replacements so far."""
        return self._version

    def replace(self, new_state: Mapping[str, V]) -> Mapping[str, V]:
        """
        Install a new mapping and notify subscribers.

        Args:
            new_state: Complete next state; copied, never aliased

        Returns:
            The installed read-only mapping
        """
        self._state = MappingProxyType(dict(new_state))
        self._version += 1
        self._notify(self._state)
        return self._state

    def update(self, updater: Callable[[Mapping[str, V]], Mapping[str, V] | None]) -> bool:
        """
        Replace the state with ``updater(current)``.

        Returning ``None`` or the current mapping itself leaves the state
        alone and notifies nobody.

        Returns:
            True if a new state was installed
        """
        current = self._state
        next_state = updater(current)
        if next_state is None or next_state is current:
            return False
        self.replace(next_state)
        return True

    # =========================================================================
    # Subscription Management
    # =========================================================================

    def subscribe(self, handler: StoreHandler) -> str:
        """
        Subscribe to state replacements.

        Args:
            handler: Called with every new mapping

        Returns:
            Subscription ID for unsubscribing
        """
        sub_id = str(uuid4())
        self._subscriptions[sub_id] = StoreSubscription(id=sub_id, handler=handler)
        self._logger.debug("store_subscription_created", subscription_id=sub_id)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from state replacements.

        Returns:
            True if unsubscribed, False if not found
        """
        if self._subscriptions.pop(subscription_id, None) is None:
            return False
        self._logger.debug("store_subscription_removed", subscription_id=subscription_id)
        return True

    def get_subscription_count(self) -> int:
        """Get number of active subscriptions."""
        return len(self._subscriptions)

    def _notify(self, state: Mapping[str, V]) -> None:
        # Snapshot so handlers may (un)subscribe while being notified
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.handler(state)
            except Exception as e:
                self._logger.error(
                    "store_subscriber_failed",
                    subscription_id=subscription.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
