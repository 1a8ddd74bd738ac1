"""
overlay-kit Kernel

The lifecycle coordinator: refs with their close barrier, the slot
registry, per call-site controllers and the ambient ref lookup.
"""

from .context import overlay_scope, use_overlay_ref
from .controller import (
    CloseOverlayFunction,
    OpenOverlayFunction,
    OverlayController,
    use_overlay,
)
from .errors import (
    BeforeCloseHookError,
    OverlayContextError,
    OverlayError,
    OverlayNotReadyError,
)
from .handles import HandleAllocator, HookIdAllocator
from .overlay_ref import BeforeCloseHook, Disposer, OverlayRef
from .registry import (
    OverlayRecord,
    OverlayRegistry,
    get_overlay_registry,
    init_overlay_registry,
    shutdown_overlay_registry,
)
from .store import OverlayStore, StoreSubscription

__all__ = [
    # Ref
    "OverlayRef",
    "BeforeCloseHook",
    "Disposer",
    # Registry
    "OverlayRegistry",
    "OverlayRecord",
    "OverlayStore",
    "StoreSubscription",
    "get_overlay_registry",
    "init_overlay_registry",
    "shutdown_overlay_registry",
    # Controller
    "OverlayController",
    "OpenOverlayFunction",
    "CloseOverlayFunction",
    "use_overlay",
    # Context
    "overlay_scope",
    "use_overlay_ref",
    # Handles
    "HandleAllocator",
    "HookIdAllocator",
    # Errors
    "OverlayError",
    "OverlayContextError",
    "OverlayNotReadyError",
    "BeforeCloseHookError",
]
