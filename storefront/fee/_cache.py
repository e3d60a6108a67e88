"""
Geocode cache — in-process LRU for resolved address coordinates.
"""

from __future__ import annotations

from collections import OrderedDict

from storefront.fee._types import Coordinates


class GeocodeCache:
    """
    Least-recently-used map of address text → coordinates.

    Note: Only successful lookups are stored; a failed geocode is retried on
    the next quote.

    Example:
        cache = GeocodeCache(max_size=256)
        cache.set("rua a, 12, centro", Coordinates(-22.9, -47.06))
        cache.get("rua a, 12, centro")
    """

    def __init__(self, max_size: int = 256) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._entries: OrderedDict[str, Coordinates] = OrderedDict()

    @staticmethod
    def key_for(address_text: str) -> str:
        return " ".join(address_text.casefold().split())

    def get(self, address_text: str) -> Coordinates | None:
        key = self.key_for(address_text)
        coords = self._entries.get(key)
        if coords is not None:
            self._entries.move_to_end(key)
        return coords

    def set(self, address_text: str, coords: Coordinates) -> None:
        key = self.key_for(address_text)
        self._entries[key] = coords
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ("GeocodeCache",)
