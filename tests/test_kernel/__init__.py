"""Tests for overlay_kit.kernel."""
