"""
Base Models and Common Types

Foundation enums and the shared pydantic model configuration used by
overlay-kit's informational models.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class OverlayKitModel(BaseModel):
    """Base model for overlay-kit value objects."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        use_enum_values=False,
    )


class OverlayState(str, Enum):
    """Lifecycle states of an overlay reference."""

    OPEN = "open"        # Mounted, accepting before-close hooks
    CLOSING = "closing"  # Close requested, waiting on the hook barrier
    CLOSED = "closed"    # Terminal, completion resolved


class HookFailurePolicy(str, Enum):
    """What close() does once every hook settled and some of them failed."""

    RAISE = "raise"  # Finish closing, then raise BeforeCloseHookError
    LOG = "log"      # Finish closing, failures are only logged


class AbandonPolicy(str, Enum):
    """What happens to a still-open ref when its slot is opened again."""

    RESOLVE = "resolve"            # Resolve its completion with None
    KEEP_PENDING = "keep_pending"  # Leave it untouched
