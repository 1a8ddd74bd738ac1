"""
overlay-kit Widgets

Lifecycle glue for payloads with exit transitions.
"""

from .transition import Drawer, Modal, TransitionGate

__all__ = ["Drawer", "Modal", "TransitionGate"]
