"""
Tests for the reference OverlayHost.

Tests cover:
- Start / stop lifecycle and subscription handling
- Mount list follows open records only
- Callable payloads run inside the overlay's scope
- mount() / unmount() callbacks on content
- Replacement remounts, unchanged records are kept
"""

from typing import Any

import pytest

from overlay_kit.kernel.context import use_overlay_ref
from overlay_kit.kernel.overlay_ref import OverlayRef
from overlay_kit.kernel.registry import OverlayRegistry, get_overlay_registry
from overlay_kit.rendering.host import OverlayHost


class RecordingContent:
    """Content that records its mount lifecycle and the ref it saw."""

    def __init__(self) -> None:
        self.ref: OverlayRef[Any] | None = use_overlay_ref(optional=True)
        self.events: list[str] = []

    def mount(self) -> None:
        self.events.append("mount")

    def unmount(self) -> None:
        self.events.append("unmount")
        assert use_overlay_ref() is self.ref


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestHostLifecycle:
    """Tests for start/stop."""

    def test_start_and_stop(self, registry: OverlayRegistry) -> None:
        """Test that the host subscribes and unsubscribes once."""
        host = OverlayHost(registry)

        host.start()
        host.start()
        assert host.running is True
        assert registry._store.get_subscription_count() == 1

        host.stop()
        host.stop()
        assert host.running is False
        assert registry._store.get_subscription_count() == 0

    def test_default_registry(self) -> None:
        """Test that the host follows the global registry by default."""
        host = OverlayHost()

        assert host._registry is get_overlay_registry()

    @pytest.mark.asyncio
    async def test_start_renders_existing_overlays(
        self, registry: OverlayRegistry
    ) -> None:
        """Test that overlays opened before start() get mounted."""
        registry.open("1", "already open")
        host = OverlayHost(registry)

        host.start()

        assert [m.content for m in host.mounted] == ["already open"]
        host.stop()
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_stop_unmounts_everything(self, registry: OverlayRegistry) -> None:
        """Test that stop() calls unmount on mounted content."""
        host = OverlayHost(registry)
        host.start()
        registry.open("1", RecordingContent)
        content = host.mounted[0].content

        host.stop()

        assert content.events == ["mount", "unmount"]
        assert host.mounted == ()
        await registry.close_all()


# =============================================================================
# Mount List Tests
# =============================================================================


class TestMountList:
    """Tests for reconciling the mount list with registry state."""

    @pytest.mark.asyncio
    async def test_open_mounts_and_close_unmounts(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test the basic mount/unmount cycle."""
        ref = registry.open("1", RecordingContent)

        mounted = host.mounted
        assert len(mounted) == 1
        assert mounted[0].slot_id == "1"
        assert mounted[0].ref is ref
        content = mounted[0].content
        assert content.ref is ref
        assert content.events == ["mount"]
        assert host.is_overlay_open is True

        registry.close("1")

        assert host.mounted == ()
        assert content.events == ["mount", "unmount"]
        assert host.is_overlay_open is False
        await ref.completion

    @pytest.mark.asyncio
    async def test_render_through_host_drains(
        self, manual_registry: OverlayRegistry
    ) -> None:
        """Test that the host's render read starts pending closes."""
        host = OverlayHost(manual_registry)
        host.start()
        ref = manual_registry.open("1", "payload")

        manual_registry.close("1")

        assert ref.state.value == "closing"
        assert await ref.completion is None
        host.stop()

    @pytest.mark.asyncio
    async def test_unchanged_records_are_not_remounted(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test that opening a second overlay keeps the first mount."""
        registry.open("1", RecordingContent)
        first = host.mounted[0]

        registry.open("2", RecordingContent)

        assert host.mounted[0] is first
        assert first.content.events == ["mount"]
        assert [m.slot_id for m in host.mounted] == ["1", "2"]
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_replacement_remounts(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test that a new ref on the same slot swaps the mounted content."""
        registry.open("1", RecordingContent)
        old = host.mounted[0].content

        new_ref = registry.open("1", RecordingContent)

        assert old.events == ["mount", "unmount"]
        assert host.mounted[0].ref is new_ref
        assert host.mounted[0].content is not old
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_plain_payload_is_mounted_as_is(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test that non-callable payloads are passed through."""
        payload = {"title": "Confirm"}

        registry.open("1", payload)

        assert host.mounted[0].content is payload
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_payload_closing_itself(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test that a payload using its ambient ref closes the overlay."""
        registry.open("1", RecordingContent)
        content = host.mounted[0].content

        await content.ref.close("picked")

        assert host.mounted == ()
        assert await content.ref.completion == "picked"

    @pytest.mark.asyncio
    async def test_refresh_returns_mount_list(
        self, registry: OverlayRegistry, host: OverlayHost
    ) -> None:
        """Test that refresh() reports the reconciled list."""
        registry.open("1", "a")

        assert host.refresh() == host.mounted
        await registry.close_all()
