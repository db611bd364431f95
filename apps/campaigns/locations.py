from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

CITY_MAPPING_PATH = Path(__file__).resolve().parent / "data" / "naukri_cities.json"

USA_ENTRY = "United States (USA)"
USA_ALIASES = {"usa", "united states"}


@lru_cache(maxsize=1)
def naukri_city_codes() -> dict[str, str]:
    """City/country name to Naukri location code, keyed in lower case."""
    with CITY_MAPPING_PATH.open(encoding="utf-8") as fh:
        mapping = json.load(fh)
    return {name.lower(): str(code) for name, code in mapping.items()}


def resolve_city(city: str | int) -> str:
    value = str(city).strip()
    if value.isdigit():
        return value

    codes = naukri_city_codes()
    key = value.lower()
    if key in codes:
        return codes[key]
    if key in USA_ALIASES:
        return codes[USA_ENTRY.lower()]

    logger.warning("City not found in Naukri mapping: %s, using as-is", value)
    return value


def resolve_cities(cities: Iterable[str | int]) -> list[str]:
    return [resolve_city(city) for city in cities]
