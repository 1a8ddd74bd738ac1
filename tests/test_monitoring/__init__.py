"""Tests for overlay_kit.monitoring."""
