"""
Overlay Registry

Single source of truth for which overlays exist and which of them are
open. Maps slot ids to OverlayRecords inside a copy-on-write OverlayStore
and converts "intent to close" (``is_open=False``) into an executed close
barrier (``ref.close()``) whenever the state is read for rendering.
"""

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, replace
from typing import Any

import structlog

from ..config import get_settings
from ..models.base import AbandonPolicy, HookFailurePolicy, OverlayState
from ..models.overlay import RegistryInfo
from .handles import HandleAllocator, HookIdAllocator
from .overlay_ref import OverlayRef
from .store import OverlayStore, StoreHandler

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OverlayRecord:
    """One slot's current overlay."""
    slot_id: str
    is_open: bool
    payload: Any  # opaque content mounted while open
    ref: OverlayRef[Any]


class OverlayRegistry:
    """
    Owns the slot map and every open/close transition on it.

    Records are never removed implicitly: a closed record stays in the map
    so late observers of its ref still get a value. Use remove_closed() to
    prune.
    """

    def __init__(
        self,
        *,
        hook_failure_policy: HookFailurePolicy | str | None = None,
        abandon_policy: AbandonPolicy | str | None = None,
        auto_drain: bool | None = None,
    ):
        """
        Initialize the registry.

        Args:
            hook_failure_policy: Passed to every ref (settings default)
            abandon_policy: Fate of a ref replaced on its slot (settings default)
            auto_drain: Close refs as soon as their slot is marked closed,
                instead of waiting for the next render() (settings default)
        """
        cfg = get_settings()
        self._hook_failure_policy = HookFailurePolicy(
            hook_failure_policy or cfg.hook_failure_policy
        )
        self._abandon_policy = AbandonPolicy(abandon_policy or cfg.abandon_policy)
        self._auto_drain = cfg.auto_drain if auto_drain is None else auto_drain

        self._handles = HandleAllocator()
        self._hook_ids = HookIdAllocator()
        self._store: OverlayStore[OverlayRecord] = OverlayStore()
        self._logger = logger.bind(component="overlay_registry")

    # =========================================================================
    # Slots
    # =========================================================================

    def allocate_slot(self) -> str:
        """Allocate a slot id unique within this registry."""
        return self._handles.generate()

    # =========================================================================
    # Open / Close
    # =========================================================================

    def open(self, slot_id: str, payload: Any) -> OverlayRef[Any]:
        """
        Open ``payload`` in ``slot_id``, replacing whatever occupies it.

        Args:
            slot_id: Slot to occupy
            payload: Content the rendering layer mounts while open

        Returns:
            The new overlay's ref
        """
        ref: OverlayRef[Any] = OverlayRef(
            lambda: self._mark_closed(slot_id, ref),
            hook_ids=self._hook_ids,
            hook_failure_policy=self._hook_failure_policy,
            slot_id=slot_id,
        )
        record = OverlayRecord(slot_id=slot_id, is_open=True, payload=payload, ref=ref)

        previous = self._store.state.get(slot_id)
        self._store.replace({**self._store.state, slot_id: record})
        self._logger.info("overlay_opened", slot_id=slot_id, replaced=previous is not None)

        if previous is not None:
            self._release_replaced(previous)

        return ref

    def close(self, slot_id: str) -> None:
        """
        Request the overlay in ``slot_id`` to close.

        No-op if the slot is empty or already closed. The ref's close
        barrier runs on the next drain.
        """
        if self._mark_closed(slot_id):
            self._logger.info("overlay_close_requested", slot_id=slot_id)

    async def close_all(self) -> None:
        """Close every overlay and wait until all of them finished closing."""
        current = self._store.state
        if any(record.is_open for record in current.values()):
            self._store.replace({
                slot_id: replace(record, is_open=False) if record.is_open else record
                for slot_id, record in current.items()
            })

        waiters = self._drain(include_closing=True)
        if waiters:
            await asyncio.gather(*waiters, return_exceptions=True)

    def _mark_closed(self, slot_id: str, ref: OverlayRef[Any] | None = None) -> bool:
        """Flip ``is_open`` off for the slot; pure state transition."""

        def updater(state: Mapping[str, OverlayRecord]) -> Mapping[str, OverlayRecord] | None:
            record = state.get(slot_id)
            if record is None or not record.is_open:
                return None
            # A replaced ref must not close the slot's new occupant
            if ref is not None and record.ref is not ref:
                return None
            return {**state, slot_id: replace(record, is_open=False)}

        changed = self._store.update(updater)
        if changed and self._auto_drain:
            self._drain()
        return changed

    def _release_replaced(self, previous: OverlayRecord) -> None:
        if self._abandon_policy is AbandonPolicy.RESOLVE:
            previous.ref.abandon()
        elif previous.ref.state is OverlayState.OPEN:
            self._logger.debug("overlay_left_pending", slot_id=previous.slot_id)

    # =========================================================================
    # Render snapshot
    # =========================================================================

    def render(self) -> Mapping[str, OverlayRecord]:
        """
        Read the state for rendering.

        Every read triggers ``ref.close()`` on records that are marked
        closed but whose ref is still open. Repeated reads are harmless.

        Returns:
            The current immutable slot map
        """
        self._drain()
        return self._store.state

    def _drain(self, include_closing: bool = False) -> list[Awaitable[None]]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug("overlay_drain_deferred", reason="no_running_loop")
            return []

        waiters: list[Awaitable[None]] = []
        for record in self._store.state.values():
            if record.is_open:
                continue
            state = record.ref.state
            if state is OverlayState.OPEN or (include_closing and state is OverlayState.CLOSING):
                waiter = asyncio.ensure_future(record.ref.close())
                waiter.add_done_callback(self._log_background_close)
                waiters.append(waiter)
        return waiters

    def _log_background_close(self, waiter: asyncio.Future[None]) -> None:
        if waiter.cancelled():
            return
        error = waiter.exception()
        if error is not None:
            self._logger.warning(
                "overlay_background_close_failed",
                error=str(error),
                error_type=type(error).__name__,
            )

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def records(self) -> Mapping[str, OverlayRecord]:
        """Current slot map without draining."""
        return self._store.state

    def get(self, slot_id: str) -> OverlayRecord | None:
        """Get the record in a slot."""
        return self._store.state.get(slot_id)

    @property
    def has_open_overlay(self) -> bool:
        """True iff at least one record is open."""
        return any(record.is_open for record in self._store.state.values())

    def get_registry_info(self) -> RegistryInfo:
        """Get registry summary information."""
        records = list(self._store.state.values())
        return RegistryInfo(
            total=len(records),
            open=sum(1 for r in records if r.is_open),
            closing=sum(1 for r in records if r.ref.state is OverlayState.CLOSING),
            closed=sum(1 for r in records if r.ref.closed),
            version=self._store.version,
            slots=[r.slot_id for r in records],
        )

    def remove_closed(self) -> int:
        """
        Drop records whose overlay finished closing.

        Returns:
            Number of records removed
        """
        state = self._store.state
        kept = {
            slot_id: record
            for slot_id, record in state.items()
            if record.is_open or not record.ref.closed
        }
        removed = len(state) - len(kept)
        if removed:
            self._store.replace(kept)
            self._logger.debug("overlay_records_pruned", removed=removed)
        return removed

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, handler: StoreHandler) -> str:
        """Subscribe to slot map replacements."""
        return self._store.subscribe(handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription."""
        return self._store.unsubscribe(subscription_id)


# =========================================================================
# Global Instance
# =========================================================================

_overlay_registry: OverlayRegistry | None = None


def get_overlay_registry() -> OverlayRegistry:
    """Get the global overlay registry instance."""
    global _overlay_registry
    if _overlay_registry is None:
        _overlay_registry = OverlayRegistry()
    return _overlay_registry


def init_overlay_registry(**kwargs: Any) -> OverlayRegistry:
    """Replace the global overlay registry with a freshly configured one."""
    global _overlay_registry
    _overlay_registry = OverlayRegistry(**kwargs)
    return _overlay_registry


async def shutdown_overlay_registry() -> None:
    """Close every overlay of the global registry and drop it."""
    global _overlay_registry
    if _overlay_registry is not None:
        await _overlay_registry.close_all()
        _overlay_registry = None
