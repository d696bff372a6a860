"""
Filter and product normalization.

Widget forms, quick-start presets, the intent engine and older storefront
payloads all describe product searches with slightly different field names
(``priceLt`` / ``priceMax`` / ``budgetMax`` / ``priceBand.max``...). Everything
is reconciled here into one ``NormalizedFilters`` value before it reaches a
handler. Normalization is total: malformed fields are dropped, never raised.
"""
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from concierge.models import (
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    SORT_OPTIONS,
    NormalizedFilters,
    ProductSummary,
)

PRICE_FLOOR = 1
PRICE_CEILING = 100_000
LIMIT_RANGE = (1, 50)
OFFSET_RANGE = (0, 5000)

# Checked in order; first numeric value wins
CEILING_KEYS = ("priceLt", "priceMax", "budgetMax")
FLOOR_KEYS = ("priceMin", "budgetMin")

_FALSE_STRINGS = {"", "false", "0", "no", "off"}


def coerce_number(value: Any) -> Optional[float]:
    """Numeric coercion for loosely typed payload values. None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _first_number(raw: Mapping[str, Any], keys: Iterable[str], band_key: str) -> Optional[float]:
    for key in keys:
        number = coerce_number(raw.get(key))
        if number is not None:
            return number
    band = raw.get("priceBand")
    if isinstance(band, Mapping):
        return coerce_number(band.get(band_key))
    return None


def _string_set(values: Any) -> List[str]:
    """Trimmed, lowercased, deduplicated strings in first-seen order."""
    if isinstance(values, (str, Mapping)) or not isinstance(values, Iterable):
        return []
    seen: List[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        cleaned = value.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def slugify(value: str) -> str:
    """Lowercase and join whitespace runs with hyphens ("Lab Diamond" -> "lab-diamond")."""
    return re.sub(r"\s+", "-", value.strip().lower())


def _paging(value: Any, default: int, bounds: tuple) -> int:
    number = coerce_number(value)
    if number is None:
        return default
    return int(_clamp(int(number), *bounds))


def normalize_filters(raw: Optional[Mapping[str, Any]]) -> NormalizedFilters:
    """
    Reconcile a raw filter payload into ``NormalizedFilters``.

    Args:
        raw: Untyped filter map from a form, preset, engine or legacy caller

    Returns:
        A new NormalizedFilters; unknown or malformed fields are omitted
    """
    if not isinstance(raw, Mapping):
        raw = {}

    fields: Dict[str, Any] = {}

    ceiling = _first_number(raw, CEILING_KEYS, "max")
    floor = _first_number(raw, FLOOR_KEYS, "min")

    for key in ("category", "metal"):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            fields[key] = value.strip().lower()

    materials = _string_set(raw.get("materials"))
    if materials:
        fields["materials"] = tuple(materials)

    if "readyToShip" in raw:
        fields["ready_to_ship"] = _coerce_bool(raw["readyToShip"])

    tags = _string_set(raw.get("tags"))

    # Stone doubles as a tag so tag-only search backends still match it
    stone = raw.get("stone")
    if isinstance(stone, str) and stone.strip():
        fields["stone"] = stone.strip().lower()
        stone_slug = slugify(stone)
        if stone_slug not in tags:
            tags.append(stone_slug)

    if tags:
        fields["tags"] = tuple(tags)

    if floor is not None:
        fields["price_min"] = _clamp(floor, PRICE_FLOOR, PRICE_CEILING)
    if ceiling is not None:
        clamped = _clamp(ceiling, PRICE_FLOOR, PRICE_CEILING)
        fields["price_max"] = clamped
        fields["price_lt"] = clamped

    if isinstance(raw.get("featured"), bool):
        fields["featured"] = raw["featured"]

    sort_by = raw.get("sortBy")
    if isinstance(sort_by, str) and sort_by in SORT_OPTIONS:
        fields["sort_by"] = sort_by

    fields["limit"] = _paging(raw.get("limit"), DEFAULT_LIMIT, LIMIT_RANGE)
    fields["offset"] = _paging(raw.get("offset"), DEFAULT_OFFSET, OFFSET_RANGE)

    if isinstance(raw.get("q"), str):
        fields["q"] = raw["q"]

    return NormalizedFilters(**fields)


def _first_string(product: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = product.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_product_response(product: Any) -> ProductSummary:
    """
    Reconcile a provider product record into ``ProductSummary``.

    Title falls back from ``title`` to ``name`` to "Untitled Product"; price is
    coerced from numeric-like values and defaults to 0.
    """
    if not isinstance(product, Mapping):
        product = {}

    raw_id = product.get("id") or product.get("_id") or product.get("productId")
    slug = _first_string(product, ("slug",))
    product_id = str(raw_id) if raw_id not in (None, "") else (slug or "")

    price = coerce_number(product.get("price"))

    tags = product.get("tags")
    tag_list = [t for t in tags if isinstance(t, str)] if isinstance(tags, (list, tuple)) else None

    return ProductSummary(
        id=product_id,
        title=_first_string(product, ("title", "name")) or "Untitled Product",
        price=price if price is not None else 0,
        image=_first_string(product, ("image", "imageUrl", "image_url")),
        tags=tuple(tag_list) if tag_list else None,
        shipping_promise=_first_string(product, ("shippingPromise", "shipping_promise")),
        slug=slug,
    )


__all__ = [
    "normalize_filters",
    "normalize_product_response",
    "coerce_number",
    "slugify",
    "PRICE_FLOOR",
    "PRICE_CEILING",
]
