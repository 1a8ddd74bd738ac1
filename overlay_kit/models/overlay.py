"""
Overlay Models

Read-only summaries of registry state for diagnostics and tests.
"""

from pydantic import Field

from overlay_kit.models.base import OverlayKitModel


class RegistryInfo(OverlayKitModel):
    """Summary counts for one OverlayRegistry."""

    total: int = Field(ge=0, description="Records currently held")
    open: int = Field(ge=0, description="Records with is_open set")
    closing: int = Field(ge=0, description="Refs waiting on their hook barrier")
    closed: int = Field(ge=0, description="Refs whose completion resolved")
    version: int = Field(ge=0, description="Number of state replacements")
    slots: list[str] = Field(default_factory=list, description="Slot ids in insertion order")

    @property
    def has_open_overlay(self) -> bool:
        """True if any record is open."""
        return self.open > 0
