"""
Tests for the ambient overlay ref.

Tests cover:
- Lookup inside and outside a scope
- Nesting and masking
- Propagation into tasks created inside a scope
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from overlay_kit.kernel.context import overlay_scope, use_overlay_ref
from overlay_kit.kernel.errors import OverlayContextError, OverlayError
from overlay_kit.kernel.overlay_ref import OverlayRef


@pytest.fixture
def ref() -> OverlayRef[None]:
    return OverlayRef(MagicMock(), slot_id="1")


class TestUseOverlayRef:
    """Tests for use_overlay_ref and overlay_scope."""

    def test_outside_scope_raises(self) -> None:
        """Test the error raised outside any overlay."""
        with pytest.raises(OverlayContextError, match="use_overlay_ref"):
            use_overlay_ref()

    def test_error_hierarchy(self) -> None:
        """Test that the context error is both an OverlayError and a LookupError."""
        with pytest.raises(LookupError):
            use_overlay_ref()
        with pytest.raises(OverlayError):
            use_overlay_ref()

    def test_optional_outside_scope(self) -> None:
        """Test that optional lookup returns None."""
        assert use_overlay_ref(optional=True) is None

    def test_inside_scope(self, ref: OverlayRef[None]) -> None:
        """Test lookup within a scope and reset afterwards."""
        with overlay_scope(ref) as scoped:
            assert scoped is ref
            assert use_overlay_ref() is ref

        assert use_overlay_ref(optional=True) is None

    def test_nested_scopes(self, ref: OverlayRef[None]) -> None:
        """Test that the innermost scope wins and the outer one is restored."""
        inner: OverlayRef[None] = OverlayRef(MagicMock(), slot_id="2")

        with overlay_scope(ref):
            with overlay_scope(inner):
                assert use_overlay_ref() is inner
            assert use_overlay_ref() is ref

    def test_none_masks_outer_scope(self, ref: OverlayRef[None]) -> None:
        """Test that a None scope hides the enclosing overlay."""
        with overlay_scope(ref):
            with overlay_scope(None):
                assert use_overlay_ref(optional=True) is None

    def test_scope_restored_on_error(self, ref: OverlayRef[None]) -> None:
        """Test that an exception inside the scope still resets it."""
        with pytest.raises(RuntimeError):
            with overlay_scope(ref):
                raise RuntimeError("payload failed")

        assert use_overlay_ref(optional=True) is None

    @pytest.mark.asyncio
    async def test_tasks_inherit_scope(self, ref: OverlayRef[None]) -> None:
        """Test that a task spawned inside a scope keeps seeing the ref."""
        with overlay_scope(ref):
            lookup = asyncio.create_task(self._lookup())

        assert await lookup is ref

    @staticmethod
    async def _lookup() -> OverlayRef[None] | None:
        await asyncio.sleep(0)
        return use_overlay_ref(optional=True)
