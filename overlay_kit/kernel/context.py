"""
Overlay Context

Makes the active OverlayRef available to code running inside an overlay's
payload without passing it explicitly. Backed by a ContextVar, so asyncio
tasks created inside a scope keep seeing the ref they were started under.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Literal, overload

from .errors import OverlayContextError
from .overlay_ref import OverlayRef

_current_overlay_ref: ContextVar[OverlayRef[Any] | None] = ContextVar(
    "current_overlay_ref", default=None
)


@contextmanager
def overlay_scope(ref: OverlayRef[Any] | None) -> Iterator[OverlayRef[Any] | None]:
    """
    Make ``ref`` the current overlay ref for the duration of the block.

    Passing ``None`` masks an outer scope. The previous value is restored
    on exit, including on error.
    """
    token = _current_overlay_ref.set(ref)
    try:
        yield ref
    finally:
        _current_overlay_ref.reset(token)


@overload
def use_overlay_ref(optional: Literal[False] = False) -> OverlayRef[Any]: ...


@overload
def use_overlay_ref(optional: bool) -> OverlayRef[Any] | None: ...


def use_overlay_ref(optional: bool = False) -> OverlayRef[Any] | None:
    """
    Get the overlay ref of the current context.

    Args:
        optional: Return None instead of raising when there is no overlay

    Returns:
        The active ref, or None when optional and outside any overlay

    Raises:
        OverlayContextError: Outside any overlay and not optional
    """
    ref = _current_overlay_ref.get()
    if ref is None and not optional:
        raise OverlayContextError(
            "No overlay ref in the current context; "
            "use_overlay_ref() must be called from an overlay's payload"
        )
    return ref
