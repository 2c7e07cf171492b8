"""Default parrot catalog inserted when the catalog collection is empty."""

from __future__ import annotations

from typing import List

# Advertised per-tier drop rates, shown in the collection view.
RARITY_DROP_RATES = {
    "normal": 0.60,
    "rare": 0.25,
    "super_rare": 0.12,
    "ultra_rare": 0.03,
}


def _entry(parrot_id: str, name: str, rarity: str) -> dict:
    return {
        "id": parrot_id,
        "name": name,
        "rarity_tier": rarity,
        "display_weight": RARITY_DROP_RATES[rarity],
        "image_key": f"{rarity}/{parrot_id}.gif",
    }


PARROT_DEFINITIONS: List[dict] = [
    _entry("parrot", "Parrot", "normal"),
    _entry("sad-parrot", "Sad Parrot", "normal"),
    _entry("coffee-parrot", "Coffee Parrot", "normal"),
    _entry("reading-parrot", "Reading Parrot", "normal"),
    _entry("sleepy-parrot", "Sleepy Parrot", "normal"),
    _entry("party-parrot", "Party Parrot", "rare"),
    _entry("deal-with-it-parrot", "Deal With It Parrot", "rare"),
    _entry("conga-parrot", "Conga Parrot", "rare"),
    _entry("fast-parrot", "Fast Parrot", "super_rare"),
    _entry("aussie-parrot", "Aussie Parrot", "super_rare"),
    _entry("ultra-fast-parrot", "Ultra Fast Parrot", "ultra_rare"),
]
