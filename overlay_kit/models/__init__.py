"""
overlay-kit Models

Enums and pydantic value objects shared across the package.
"""

from overlay_kit.models.base import (
    AbandonPolicy,
    HookFailurePolicy,
    OverlayKitModel,
    OverlayState,
)
from overlay_kit.models.overlay import RegistryInfo

__all__ = [
    "AbandonPolicy",
    "HookFailurePolicy",
    "OverlayKitModel",
    "OverlayState",
    "RegistryInfo",
]
