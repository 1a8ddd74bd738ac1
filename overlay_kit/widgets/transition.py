"""
Transition Widgets

Throw-away payload helpers for overlays with an exit transition. Inside an
overlay they start visible and register a before-close hook that hides
them and holds the close barrier until the widget reports that its exit
transition finished. The visuals themselves belong to the host toolkit;
these classes only carry the lifecycle glue.

Usage (inside a payload):
    def confirm_dialog():
        modal = Modal(on_open_change=toolkit_dialog.set_visible)
        toolkit_dialog.on_hidden(modal.after_close)
        return modal
"""

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from ..kernel.context import use_overlay_ref
from ..kernel.overlay_ref import Disposer, OverlayRef

logger = structlog.get_logger(__name__)

OpenChangeCallback = Callable[[bool], None]


class TransitionGate:
    """
    Visibility state plus a before-close hook gated on an exit transition.

    By default the gate must be created inside an overlay. With
    ``out_of_overlay=True`` it may also be used standalone, in which case
    visibility simply follows set_open().
    """

    def __init__(
        self,
        *,
        out_of_overlay: bool = False,
        open: bool = False,
        on_open_change: OpenChangeCallback | None = None,
    ):
        """
        Initialize the gate.

        Args:
            out_of_overlay: Allow use outside any overlay
            open: Initial visibility when used outside an overlay
            on_open_change: Called with the new visibility on every change
        """
        self._ref: OverlayRef[Any] | None = use_overlay_ref(optional=out_of_overlay)
        self._visible = True if self._ref is not None else open
        self._on_open_change = on_open_change
        self._pending: asyncio.Future[None] | None = None
        self._dispose: Disposer | None = None

    @property
    def ref(self) -> OverlayRef[Any] | None:
        return self._ref

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def transitioning(self) -> bool:
        """True while the close barrier waits on this gate."""
        return self._pending is not None and not self._pending.done()

    def mount(self) -> None:
        """Register the before-close hook on the overlay ref."""
        if self._ref is None or self._dispose is not None:
            return
        self._dispose = self._ref.on_before_close(self._before_close)

    def unmount(self) -> None:
        """Remove the hook and release a close still waiting on this gate."""
        if self._dispose is not None:
            self._dispose()
            self._dispose = None
        self.transition_finished()

    def set_open(self, value: bool) -> None:
        """Drive visibility from outside. Ignored inside an overlay."""
        if self._ref is not None:
            return
        self._set_visible(value)

    def transition_finished(self) -> None:
        """Release the close barrier once the exit transition is over."""
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(None)
            logger.debug("overlay_transition_finished", slot_id=self._ref.slot_id)
        self._pending = None

    def _before_close(self, result: Any = None) -> asyncio.Future[None] | None:
        self._set_visible(False)
        if self._dispose is None:
            # Unmounted before the hook ran; nothing will report the transition
            return None
        self._pending = asyncio.get_running_loop().create_future()
        return self._pending

    def _set_visible(self, value: bool) -> None:
        if value == self._visible:
            return
        self._visible = value
        if self._on_open_change is not None:
            self._on_open_change(value)


class Modal(TransitionGate):
    """Dialog flavour: the toolkit reports the end of its close animation."""

    def __init__(
        self,
        *,
        on_after_close: Callable[[], None] | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self._on_after_close = on_after_close

    def after_close(self) -> None:
        """Call when the dialog's close animation finished."""
        if self._on_after_close is not None:
            self._on_after_close()
        self.transition_finished()


class Drawer(TransitionGate):
    """Drawer flavour: the toolkit reports every open-state change."""

    def __init__(
        self,
        *,
        on_after_open_change: OpenChangeCallback | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self._on_after_open_change = on_after_open_change

    def after_open_change(self, open: bool) -> None:
        """Call when the drawer finished opening or closing."""
        if self._on_after_open_change is not None:
            self._on_after_open_change(open)
        if not open:
            self.transition_finished()
