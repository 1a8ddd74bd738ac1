"""
Overlay Kernel Errors

Exception hierarchy for the overlay lifecycle kernel.
"""


class OverlayError(Exception):
    """Base exception for overlay errors."""
    pass


class OverlayContextError(OverlayError, LookupError):
    """A required overlay ref was looked up outside of any open overlay."""
    pass


class OverlayNotReadyError(OverlayError):
    """The overlay has not finished closing, so it has no result yet."""
    pass


class BeforeCloseHookError(OverlayError, ExceptionGroup):
    """
    One or more before-close hooks failed during a close barrier.

    Raised from ``OverlayRef.close()`` only after every hook settled and the
    overlay finished closing. ``exceptions`` holds each individual failure.
    """
    pass
