"""Reserved nicknames."""

from collections.abc import Iterable


class BlockList:
    def __init__(self, names: Iterable[str]) -> None:
        self._names = frozenset(name.strip().lower() for name in names)

    def find(self, name: str) -> bool:
        """True if ``name`` is reserved (case-insensitive)."""
        return name.strip().lower() in self._names
