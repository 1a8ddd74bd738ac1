"""Tests for overlay_kit.rendering."""
