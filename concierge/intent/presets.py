"""
Quick-start product presets.

Shown as one-tap chips in the product filter form and on the empty-state
screen. Caller-supplied filters always win over preset filters.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class QuickStartPreset:
    """A named starting filter set."""
    slug: str
    label: str
    filters: Dict[str, Any] = field(default_factory=dict)


QUICK_START_PRESETS: List[QuickStartPreset] = [
    QuickStartPreset(
        slug="ready-to-ship",
        label="Ready to ship",
        filters={"readyToShip": True, "sortBy": "featured"},
    ),
    QuickStartPreset(
        slug="gifts-under-300",
        label="Gifts under $300",
        filters={"tags": ["gift"], "priceLt": 300},
    ),
    QuickStartPreset(
        slug="engagement-rings",
        label="Engagement rings",
        filters={"category": "ring", "tags": ["engagement"]},
    ),
    QuickStartPreset(
        slug="lab-diamonds",
        label="Lab-grown diamonds",
        filters={"stone": "lab diamond"},
    ),
    QuickStartPreset(
        slug="new-arrivals",
        label="New arrivals",
        filters={"sortBy": "newest"},
    ),
    QuickStartPreset(
        slug="recycled-gold",
        label="Recycled gold",
        filters={"metal": "gold", "materials": ["recycled gold"]},
    ),
]

_PRESETS_BY_SLUG = {preset.slug: preset for preset in QUICK_START_PRESETS}


def get_preset(slug: Optional[str]) -> Optional[QuickStartPreset]:
    """Look up a preset by slug; unknown or missing slugs return None."""
    if not slug:
        return None
    return _PRESETS_BY_SLUG.get(slug)
