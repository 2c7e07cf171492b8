from __future__ import annotations

import logging
import random
from typing import List, Sequence

from ..errors import NoCollectiblesAvailableError
from ..models import Collectible, DrawResult

logger = logging.getLogger(__name__)


class DrawEngine:
    """Resolve gacha draws against the collectible catalog.

    Draws are uniform over the catalog unless ``weighted`` is set, in which
    case each collectible's ``display_weight`` biases the pick.
    """

    def __init__(self, rng: random.Random | None = None, *, weighted: bool = False) -> None:
        self._rng = rng or random.SystemRandom()
        self._weighted = weighted

    def draw(self, catalog: Sequence[Collectible], count: int) -> List[DrawResult]:
        """Draw ``count`` collectibles independently, with replacement."""

        if not catalog:
            raise NoCollectiblesAvailableError("No collectibles available for drawing")
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        pool = list(catalog)
        if self._weighted:
            selected = self._weighted_picks(pool, count)
        else:
            selected = [self._rng.choice(pool) for _ in range(count)]

        return [DrawResult(collectible=item, rarity_tier=item.rarity_tier) for item in selected]

    def _weighted_picks(self, pool: List[Collectible], count: int) -> List[Collectible]:
        weights = [item.display_weight for item in pool]
        if sum(weights) <= 0:
            logger.warning("Catalog weights sum to zero; falling back to uniform draws")
            return [self._rng.choice(pool) for _ in range(count)]
        return self._rng.choices(pool, weights=weights, k=count)
