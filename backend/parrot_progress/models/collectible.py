from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class RarityTier(str, Enum):
    """Display classification attached to every collectible."""

    NORMAL = "normal"
    RARE = "rare"
    SUPER_RARE = "super_rare"
    ULTRA_RARE = "ultra_rare"


class Collectible(BaseModel):
    """A parrot that can be drawn from the gacha."""

    id: str = Field(..., description="Unique identifier for the parrot")
    name: str
    rarity_tier: RarityTier = RarityTier.NORMAL
    display_weight: float = Field(
        default=1.0,
        ge=0,
        description="Advertised drop rate; only used when weighted draws are enabled",
    )
    image_key: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_mongo(cls, document: Dict[str, Any]) -> "Collectible":
        """Convert a MongoDB document to a collectible model."""

        payload = dict(document)
        payload["id"] = payload.pop("_id", payload.get("id"))
        return cls(**payload)


class DrawResult(BaseModel):
    """One resolved gacha draw."""

    collectible: Collectible
    rarity_tier: RarityTier
