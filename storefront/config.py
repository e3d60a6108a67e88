"""
Application configuration from STOREFRONT_* environment variables.

A .env file in the working directory is read too; real environment
variables win over it.

    settings = AppSettings.from_env()
    settings.store.fee_table.max_radius_km
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import dotenv_values
from pydantic import TypeAdapter, ValidationError

from storefront.checkout._settings import StoreSettings
from storefront.fee._table import FeeTable

PREFIX = "STOREFRONT_"

DEFAULT_ENV_FILE = ".env"

_BOOL = TypeAdapter(bool)


def _flag(raw: str, name: str) -> bool:
    try:
        return _BOOL.validate_python(raw.strip())
    except ValidationError as e:
        raise ValueError(f"{PREFIX}{name} must be a boolean, got {raw!r}") from e


def parse_fee_table(raw: str) -> FeeTable:
    """
    "2:5.00,4:6.00,6:8.00" → FeeTable.

    Bands are validated by FeeTable itself.
    """
    pairs: list[tuple[float, str]] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        km, sep, fee = chunk.partition(":")
        if not sep:
            raise ValueError(f"fee band {chunk!r} must look like <km>:<fee>")
        pairs.append((float(km), fee.strip()))
    return FeeTable.from_pairs(pairs)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """
    Process-wide settings.

    Note: Immutable. StoreSettings inside is what the checkout consumes.
    """

    database_url: str = "sqlite+aiosqlite:///storefront.db"
    openroute_api_key: str | None = None
    log_level: str = "INFO"
    language: str = "en"
    store: StoreSettings = field(default_factory=StoreSettings)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str | None] | None = None,
        env_file: str | Path | None = DEFAULT_ENV_FILE,
    ) -> AppSettings:
        """
        Build settings from ``env``, or from the process environment layered
        over ``env_file`` when ``env`` is not given.
        """
        if env is not None:
            source: Mapping[str, str | None] = env
        else:
            file_values = dotenv_values(env_file) if env_file is not None else {}
            source = {**file_values, **os.environ}

        def get(name: str) -> str | None:
            value = source.get(PREFIX + name)
            return value if value not in (None, "") else None

        settings = cls()
        store = settings.store

        if (url := get("DATABASE_URL")) is not None:
            settings = replace(settings, database_url=url)
        if (key := get("OPENROUTE_API_KEY")) is not None:
            settings = replace(settings, openroute_api_key=key)
        if (level := get("LOG_LEVEL")) is not None:
            settings = replace(settings, log_level=level.upper())
        if (language := get("LANGUAGE")) is not None:
            settings = replace(settings, language=language)

        lat, lng = get("STORE_LAT"), get("STORE_LNG")
        if (lat is None) != (lng is None):
            raise ValueError(f"{PREFIX}STORE_LAT and {PREFIX}STORE_LNG must be set together")
        if lat is not None and lng is not None:
            store = store.with_origin(float(lat), float(lng))

        if (raw := get("DELIVERY_ENABLED")) is not None:
            store = store.with_delivery(enabled=_flag(raw, "DELIVERY_ENABLED"))
        if (raw := get("PICKUP_ENABLED")) is not None:
            store = store.with_pickup(enabled=_flag(raw, "PICKUP_ENABLED"))
        if (raw := get("REDIRECT_PAYMENTS")) is not None:
            store = store.with_redirect_payments(_flag(raw, "REDIRECT_PAYMENTS"))
        if (raw := get("FEE_TABLE")) is not None:
            store = store.with_fee_table(parse_fee_table(raw))
        if (raw := get("MIN_ORDER")) is not None:
            store = store.with_min_order(raw)
        if (raw := get("CURRENCY")) is not None:
            store = store.with_currency(raw.upper())

        if not (store.delivery_enabled or store.pickup_enabled):
            raise ValueError("at least one of delivery or pickup must be enabled")

        return replace(settings, store=store)


__all__ = ("PREFIX", "DEFAULT_ENV_FILE", "parse_fee_table", "AppSettings")
