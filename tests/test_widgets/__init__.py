"""Tests for overlay_kit.widgets."""
