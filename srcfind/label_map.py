"""Multimap of detection labels to new labels."""

from __future__ import annotations

from collections.abc import Iterator


class LabelMap:
    """Ordered collection of key-value pairs of non-negative integers.

    The same key may be pushed more than once; lookups then return the
    value of the most recent entry, and every entry counts towards the size.
    """

    def __init__(self) -> None:
        self._pairs: list[tuple[int, int]] = []

    def push(self, key: int, value: int) -> None:
        """Append a key-value pair without checking for an existing key."""
        self._pairs.append((key, value))

    def get_value(self, key: int) -> int:
        """Return the value of the last entry with the given key.

        Raises KeyError if the key does not exist.
        """
        for k, v in reversed(self._pairs):
            if k == key:
                return v
        raise KeyError(f"Key '{key}' not found in map.")

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self._pairs)

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return iter(self._pairs)

    def __repr__(self) -> str:
        return f"LabelMap({self._pairs!r})"