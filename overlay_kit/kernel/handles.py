"""
Handle Allocation

Monotonic identifier sources owned by a registry. Each registry holds its
own allocators so independent registries never share identifier space.
Single event-loop use only.
"""


class HandleAllocator:
    """Generates slot identifiers: "1", "2", "3", ..."""

    def __init__(self) -> None:
        self._count = 0

    def generate(self) -> str:
        """Return a slot id never returned before by this allocator."""
        self._count += 1
        return f"{self._count}"

    @property
    def issued(self) -> int:
        """Number of ids handed out so far."""
        return self._count


class HookIdAllocator:
    """Generates before-close hook keys shared by every ref of a registry."""

    def __init__(self) -> None:
        self._count = 0

    def allocate(self) -> int:
        self._count += 1
        return self._count
