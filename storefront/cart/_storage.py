"""
Cart storage — durable key-value persistence port.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

type CartPayload = list[dict[str, Any]]


class CartStorage(Protocol):
    """
    Where the cart survives between sessions.

    Both methods are synchronous; the cart calls save() after every change.
    load() returns None when nothing was stored yet.
    """

    def load(self) -> CartPayload | None: ...

    def save(self, payload: CartPayload) -> None: ...


class MemoryCartStorage:
    """In-memory storage — for tests and server-side transient carts."""

    def __init__(self, payload: CartPayload | None = None) -> None:
        self.payload = payload
        self.saves = 0

    def load(self) -> CartPayload | None:
        return self.payload

    def save(self, payload: CartPayload) -> None:
        self.saves += 1
        self.payload = payload


class JsonFileCartStorage:
    """
    Cart persisted as a JSON file.

    Example:
        storage = JsonFileCartStorage(Path.home() / ".storefront" / "cart.json")
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CartPayload | None:
        if not self._path.exists():
            return None
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{self._path} does not hold a cart")
        return data

    def save(self, payload: CartPayload) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)


__all__ = ("CartPayload", "CartStorage", "MemoryCartStorage", "JsonFileCartStorage")
