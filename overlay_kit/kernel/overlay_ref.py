"""
Overlay Reference

Per-overlay handle shared by the registry that triggers its close, the
caller that opened the overlay and awaits its result, and the payload that
may close itself or delay its own teardown.

Lifecycle:
    OPEN --close()--> CLOSING (awaiting the hook barrier) --> CLOSED

Before-close hooks are snapshotted at the moment close() is called and run
concurrently; the overlay is marked closed, the registry is told, and the
completion is resolved only after every snapshotted hook settled.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog

from ..models.base import HookFailurePolicy, OverlayState
from ..monitoring.logging import log_duration
from .errors import BeforeCloseHookError, OverlayNotReadyError
from .handles import HookIdAllocator

logger = structlog.get_logger(__name__)

R = TypeVar("R")

# Hook receives the close result (None when closed externally) and may
# return an awaitable the barrier waits on.
BeforeCloseHook = Callable[[Any], Awaitable[Any] | None]
Disposer = Callable[[], None]


def _settled(loop: asyncio.AbstractEventLoop) -> asyncio.Future[None]:
    future: asyncio.Future[None] = loop.create_future()
    future.set_result(None)
    return future


def _mark_retrieved(future: asyncio.Future[Any]) -> None:
    # Awaiting callers still receive the exception
    if not future.cancelled():
        future.exception()


class OverlayRef(Generic[R]):
    """
    Close control, result signal and before-close barrier for one overlay.

    The ``close_underlying`` callback is injected by the owner (normally
    ``OverlayRegistry``) and is invoked at most once, from the close path.
    """

    def __init__(
        self,
        close_underlying: Callable[[], None],
        *,
        hook_ids: HookIdAllocator | None = None,
        hook_failure_policy: HookFailurePolicy | str = HookFailurePolicy.RAISE,
        slot_id: str | None = None,
    ):
        """
        Initialize the reference.

        Args:
            close_underlying: Tells the owner this overlay is gone
            hook_ids: Key source for hook registrations (private one if omitted)
            hook_failure_policy: Whether close() raises after failed hooks
            slot_id: Owning slot, for diagnostics only
        """
        self.slot_id = slot_id
        self._close_underlying = close_underlying
        self._hook_ids = hook_ids or HookIdAllocator()
        self._hook_failure_policy = HookFailurePolicy(hook_failure_policy)
        self._hooks: dict[int, BeforeCloseHook] = {}
        self._state = OverlayState.OPEN
        self._result: R | None = None
        self._future: asyncio.Future[R | None] | None = None
        self._closing: asyncio.Task[None] | None = None
        self._logger = logger.bind(component="overlay_ref", slot_id=slot_id)

        try:
            self._future = asyncio.get_running_loop().create_future()
        except RuntimeError:
            # No loop yet; wired on first use from inside one.
            pass

    def __repr__(self) -> str:
        return (
            f"<OverlayRef slot={self.slot_id!r} state={self._state.value} "
            f"hooks={len(self._hooks)}>"
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> OverlayState:
        """Current lifecycle state."""
        return self._state

    @property
    def closed(self) -> bool:
        """Whether the overlay finished closing. Never reverts."""
        return self._state is OverlayState.CLOSED

    @property
    def completion(self) -> Awaitable[R | None]:
        """
        Resolves once with the close result.

        The value is ``None`` when the overlay was closed without a result,
        e.g. through ``OverlayRegistry.close``. The returned awaitable is
        shielded, so timing out on it leaves the ref untouched.
        """
        return asyncio.shield(self._ensure_future())

    # Name used by the dialog APIs this mirrors
    after_closed = completion

    def result(self) -> R | None:
        """
        Return the close result synchronously.

        Raises:
            OverlayNotReadyError: The overlay has not finished closing
        """
        if self._state is not OverlayState.CLOSED:
            raise OverlayNotReadyError(
                f"Overlay in slot {self.slot_id!r} is {self._state.value}, not closed"
            )
        return self._result

    def _ensure_future(self) -> asyncio.Future[R | None]:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
            if self._state is OverlayState.CLOSED:
                self._future.set_result(self._result)
        return self._future

    # =========================================================================
    # Before-close hooks
    # =========================================================================

    def on_before_close(self, hook: BeforeCloseHook) -> Disposer:
        """
        Register a callback to run before the overlay is destroyed.

        The callback may return an awaitable; close() waits for it together
        with every other hook registered when close() was called. Hooks
        registered once the overlay is closed are accepted and never run.

        Hooks are called with the close result as their single positional
        argument, so a hook must accept one (``lambda result: ...``). A hook
        that cannot take it fails with ``TypeError`` like any other hook.

        Args:
            hook: Called with the close result

        Returns:
            Disposer removing this registration
        """
        if self._state is OverlayState.CLOSED:
            return lambda: None

        key = self._hook_ids.allocate()
        self._hooks[key] = hook

        def dispose() -> None:
            self._hooks.pop(key, None)

        return dispose

    # =========================================================================
    # Closing
    # =========================================================================

    def close(self, result: R | None = None) -> Awaitable[None]:
        """
        Close the overlay, optionally handing back a result.

        Hooks are snapshotted synchronously by this call; the barrier then
        runs in its own task, so cancelling an ``await`` on the returned
        awaitable does not stop the close. Calling close() on a closing or
        closed ref is a no-op: it waits for the in-flight close, if any, and
        never raises. Only the call that started the close reports hook
        failures.

        Must be called with a running event loop.

        Args:
            result: Value to resolve ``completion`` with

        Returns:
            Awaitable settling once the overlay is fully closed

        Raises:
            BeforeCloseHookError: When awaited, if hooks failed and the
                policy is ``raise``. The overlay is closed regardless.
        """
        loop = asyncio.get_running_loop()

        if self._state is OverlayState.CLOSED:
            return _settled(loop)

        if self._closing is not None:
            return self._join(loop, self._closing)

        future = self._ensure_future()
        if future.done():
            self._logger.warning(
                "overlay_ref_not_ready",
                reason="completion_cancelled" if future.cancelled() else "completion_settled",
            )
            return _settled(loop)

        hooks = list(self._hooks.values())
        self._state = OverlayState.CLOSING
        self._logger.debug(
            "overlay_close_started",
            hooks=len(hooks),
            has_result=result is not None,
        )

        self._closing = loop.create_task(self._run_close(hooks, result))
        self._closing.add_done_callback(self._on_close_done)
        waiter = asyncio.shield(self._closing)
        waiter.add_done_callback(_mark_retrieved)
        return waiter

    def _join(
        self,
        loop: asyncio.AbstractEventLoop,
        closing: asyncio.Task[None],
    ) -> asyncio.Future[None]:
        """Settle with None once the in-flight close finished, whatever its outcome."""
        joined: asyncio.Future[None] = loop.create_future()

        def settle(task: asyncio.Task[None]) -> None:
            if not joined.done():
                joined.set_result(None)

        closing.add_done_callback(settle)
        return joined

    def abandon(self) -> bool:
        """
        Mark an open ref closed without running hooks or close_underlying.

        Used when a new overlay replaces this one on its slot. Completion
        resolves with ``None``.

        Returns:
            True if the ref was open and is now closed
        """
        if self._state is not OverlayState.OPEN:
            return False

        self._state = OverlayState.CLOSED
        self._hooks.clear()
        if self._future is not None and not self._future.done():
            self._future.set_result(None)

        self._logger.info("overlay_abandoned")
        return True

    async def _run_close(self, hooks: list[BeforeCloseHook], result: R | None) -> None:
        """Hook barrier followed by the closed/underlying/completion steps."""
        with log_duration(self._logger, "overlay_close_barrier", level="debug", hooks=len(hooks)):
            failures = await self._invoke_hooks(hooks, result)

        self._state = OverlayState.CLOSED
        self._result = result
        self._hooks.clear()

        future = self._future
        try:
            self._close_underlying()
        finally:
            if future is not None and not future.done():
                future.set_result(result)

        self._logger.info("overlay_closed", hook_failures=len(failures))

        if failures and self._hook_failure_policy is HookFailurePolicy.RAISE:
            raise BeforeCloseHookError(
                f"{len(failures)} before-close hook(s) failed",
                failures,
            )

    async def _invoke_hooks(
        self,
        hooks: list[BeforeCloseHook],
        result: R | None,
    ) -> list[Exception]:
        """Run every hook and wait for all of them to settle."""
        failures: list[Exception] = []
        pending: list[Awaitable[Any]] = []

        for hook in hooks:
            try:
                outcome = hook(result)
            except Exception as e:
                failures.append(e)
                continue
            if inspect.isawaitable(outcome):
                pending.append(outcome)

        if pending:
            outcomes = await asyncio.gather(*pending, return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, asyncio.CancelledError):
                    self._logger.warning("overlay_before_close_hook_cancelled")
                elif isinstance(outcome, Exception):
                    failures.append(outcome)

        for failure in failures:
            self._logger.error(
                "overlay_before_close_hook_failed",
                error=str(failure),
                error_type=type(failure).__name__,
            )

        return failures

    def _on_close_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            self._logger.warning("overlay_close_cancelled")
            return

        error = task.exception()
        if error is not None and not isinstance(error, BeforeCloseHookError):
            self._logger.error(
                "overlay_close_failed",
                error=str(error),
                error_type=type(error).__name__,
            )
