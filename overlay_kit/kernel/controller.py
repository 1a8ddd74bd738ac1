"""
Overlay Controller

Per call-site entry point. A controller binds one registry slot for its
whole lifetime and governs at most one open overlay at a time: opening
again while an overlay is open replaces it.

Usage:
    controller: OverlayController[str] = OverlayController(registry)

    ref = controller.open(greeting_dialog)
    result = await ref.completion   # "Hello, World" or None

    controller.close()              # dismiss from outside, result None

To show several overlays at the same time, use several controllers.
"""

from collections.abc import Callable
from typing import Any, Generic, TypeVar, cast

from .overlay_ref import OverlayRef
from .registry import OverlayRegistry, get_overlay_registry

R = TypeVar("R")

OpenOverlayFunction = Callable[[Any], OverlayRef[Any]]
CloseOverlayFunction = Callable[[], None]


class OverlayController(Generic[R]):
    """Open/close control bound to one slot of a registry."""

    def __init__(self, registry: OverlayRegistry | None = None):
        """
        Initialize the controller.

        Args:
            registry: Registry to use (global registry if not provided)
        """
        self._registry = registry if registry is not None else get_overlay_registry()
        self._slot_id = self._registry.allocate_slot()

    def __repr__(self) -> str:
        return f"<OverlayController slot={self._slot_id!r} open={self.is_open}>"

    @property
    def slot_id(self) -> str:
        return self._slot_id

    @property
    def registry(self) -> OverlayRegistry:
        return self._registry

    @property
    def current_ref(self) -> OverlayRef[R] | None:
        """Ref of whatever occupies this controller's slot."""
        record = self._registry.get(self._slot_id)
        if record is None:
            return None
        return cast(OverlayRef[R], record.ref)

    @property
    def is_open(self) -> bool:
        record = self._registry.get(self._slot_id)
        return record is not None and record.is_open

    def open(self, payload: Any) -> OverlayRef[R]:
        """
        Show ``payload`` in this controller's slot.

        Args:
            payload: Content for the rendering layer; a callable payload is
                invoked with the new ref available through use_overlay_ref()

        Returns:
            Ref to await the result on
        """
        return cast(OverlayRef[R], self._registry.open(self._slot_id, payload))

    def close(self) -> None:
        """Close whatever occupies this controller's slot, without a result."""
        self._registry.close(self._slot_id)


def use_overlay(
    registry: OverlayRegistry | None = None,
) -> tuple[OpenOverlayFunction, CloseOverlayFunction]:
    """
    Create a controller and return its bound ``(open, close)`` pair.

    Convenient where only the two callables are passed around, e.g. as
    button callbacks.
    """
    controller: OverlayController[Any] = OverlayController(registry)
    return controller.open, controller.close
