"""
overlay-kit Rendering

Reference rendering-layer consumer of the registry.
"""

from .host import MountedOverlay, OverlayHost

__all__ = ["MountedOverlay", "OverlayHost"]
