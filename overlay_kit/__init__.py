"""
overlay-kit - Overlay Lifecycle Coordinator

Programmatic open/close control for transient UI overlays (dialogs,
drawers, popovers) with a one-shot result and an asynchronous
before-close barrier.
"""

__version__ = "1.0.0"

from overlay_kit.config import settings
from overlay_kit.kernel import (
    BeforeCloseHookError,
    OverlayContextError,
    OverlayController,
    OverlayError,
    OverlayNotReadyError,
    OverlayRecord,
    OverlayRef,
    OverlayRegistry,
    get_overlay_registry,
    init_overlay_registry,
    overlay_scope,
    shutdown_overlay_registry,
    use_overlay,
    use_overlay_ref,
)
from overlay_kit.models import OverlayState
from overlay_kit.rendering import MountedOverlay, OverlayHost

__all__ = [
    "settings",
    "__version__",
    "OverlayRef",
    "OverlayState",
    "OverlayRegistry",
    "OverlayRecord",
    "OverlayController",
    "OverlayHost",
    "MountedOverlay",
    "use_overlay",
    "use_overlay_ref",
    "overlay_scope",
    "get_overlay_registry",
    "init_overlay_registry",
    "shutdown_overlay_registry",
    "OverlayError",
    "OverlayContextError",
    "OverlayNotReadyError",
    "BeforeCloseHookError",
]
