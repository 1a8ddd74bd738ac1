"""
Overlay Host

Reference consumer of the registry contract for a rendering layer. The
host subscribes to the registry, re-reads the render snapshot after every
state change (which drains pending closes) and keeps the list of mounted
payloads in sync with the open records.

Payload conventions:
- A callable payload is called with no arguments inside the overlay's
  scope, so it can reach its ref through use_overlay_ref(). Its return
  value is the mounted content.
- Any other payload is mounted as-is.
- Content exposing ``mount()`` / ``unmount()`` gets them called, inside the
  same scope, when it enters and leaves the mount list.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from ..kernel.context import overlay_scope
from ..kernel.overlay_ref import OverlayRef
from ..kernel.registry import OverlayRecord, OverlayRegistry, get_overlay_registry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MountedOverlay:
    """An open overlay as currently mounted by the host."""
    slot_id: str
    ref: OverlayRef[Any]
    content: Any


class OverlayHost:
    """
    Mount-list manager driven by registry state changes.

    Lifecycle:
    1. start() - subscribe and render the current state
    2. refresh() - re-render, called automatically on every change
    3. stop() - unsubscribe and unmount everything
    """

    def __init__(self, registry: OverlayRegistry | None = None):
        self._registry = registry if registry is not None else get_overlay_registry()
        self._subscription_id: str | None = None
        self._mounted: dict[str, MountedOverlay] = {}
        self._logger = logger.bind(component="overlay_host")

    @property
    def running(self) -> bool:
        return self._subscription_id is not None

    @property
    def mounted(self) -> tuple[MountedOverlay, ...]:
        """Open overlays in slot order."""
        return tuple(self._mounted.values())

    @property
    def is_overlay_open(self) -> bool:
        """True iff any overlay in the registry is open."""
        return self._registry.has_open_overlay

    def start(self) -> None:
        """Start following the registry."""
        if self._subscription_id is not None:
            return
        self._subscription_id = self._registry.subscribe(self._on_state_change)
        self.refresh()
        self._logger.info("overlay_host_started")

    def stop(self) -> None:
        """Stop following the registry and unmount all content."""
        if self._subscription_id is None:
            return
        self._registry.unsubscribe(self._subscription_id)
        self._subscription_id = None
        for mounted in list(self._mounted.values()):
            self._unmount(mounted)
        self._mounted.clear()
        self._logger.info("overlay_host_stopped")

    def refresh(self) -> tuple[MountedOverlay, ...]:
        """
        Read the render snapshot and reconcile the mount list.

        Returns:
            The mounted overlays after reconciliation
        """
        records = self._registry.render()
        self._reconcile(records)
        return self.mounted

    def _on_state_change(self, records: Mapping[str, OverlayRecord]) -> None:
        self.refresh()

    def _reconcile(self, records: Mapping[str, OverlayRecord]) -> None:
        next_mounted: dict[str, MountedOverlay] = {}

        for slot_id, record in records.items():
            if not record.is_open:
                continue
            current = self._mounted.get(slot_id)
            if current is not None and current.ref is record.ref:
                next_mounted[slot_id] = current
            else:
                next_mounted[slot_id] = self._mount(record)

        for slot_id, mounted in self._mounted.items():
            if next_mounted.get(slot_id) is not mounted:
                self._unmount(mounted)

        self._mounted = next_mounted

    def _mount(self, record: OverlayRecord) -> MountedOverlay:
        with overlay_scope(record.ref):
            payload = record.payload
            content = payload() if callable(payload) else payload
            mount = getattr(content, "mount", None)
            if callable(mount):
                mount()

        self._logger.debug("overlay_mounted", slot_id=record.slot_id)
        return MountedOverlay(slot_id=record.slot_id, ref=record.ref, content=content)

    def _unmount(self, mounted: MountedOverlay) -> None:
        unmount = getattr(mounted.content, "unmount", None)
        if callable(unmount):
            with overlay_scope(mounted.ref):
                unmount()
        self._logger.debug("overlay_unmounted", slot_id=mounted.slot_id)
