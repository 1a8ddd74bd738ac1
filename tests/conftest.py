"""
overlay-kit - Test Fixtures

Shared pytest fixtures for all test modules.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

from overlay_kit.config import get_settings
from overlay_kit.kernel import registry as registry_module
from overlay_kit.kernel.registry import OverlayRegistry
from overlay_kit.rendering.host import OverlayHost


@pytest.fixture(autouse=True)
def reset_global_registry(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Give every test a fresh global registry slot."""
    monkeypatch.setattr(registry_module, "_overlay_registry", None)
    yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings so env overrides in one test do not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def registry() -> OverlayRegistry:
    """Registry with explicit policies, independent of the environment."""
    return OverlayRegistry(
        hook_failure_policy="raise",
        abandon_policy="resolve",
        auto_drain=True,
    )


@pytest.fixture
def manual_registry() -> OverlayRegistry:
    """Registry that only drains pending closes on render()."""
    return OverlayRegistry(
        hook_failure_policy="raise",
        abandon_policy="resolve",
        auto_drain=False,
    )


@pytest.fixture
def host(registry: OverlayRegistry) -> Generator[OverlayHost, None, None]:
    """Started host following the default test registry."""
    overlay_host = OverlayHost(registry)
    overlay_host.start()
    yield overlay_host
    overlay_host.stop()
