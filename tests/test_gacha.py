"""Tests for parrot_progress/services/gacha.py."""
from __future__ import annotations

import random
from collections import Counter

import pytest

from parrot_progress.errors import NoCollectiblesAvailableError
from parrot_progress.models import Collectible, RarityTier
from parrot_progress.services.gacha import DrawEngine


class TestDraw:
    def test_returns_requested_number_of_results(self, small_catalog, seeded_rng):
        results = DrawEngine(seeded_rng).draw(small_catalog, 10)
        assert len(results) == 10

    def test_rarity_is_read_off_the_collectible(self, small_catalog, seeded_rng):
        for result in DrawEngine(seeded_rng).draw(small_catalog, 50):
            assert result.rarity_tier == result.collectible.rarity_tier
            assert result.collectible in small_catalog

    def test_empty_catalog(self, seeded_rng):
        with pytest.raises(NoCollectiblesAvailableError):
            DrawEngine(seeded_rng).draw([], 1)

    @pytest.mark.parametrize("count", [0, -1])
    def test_non_positive_count(self, small_catalog, seeded_rng, count):
        with pytest.raises(ValueError):
            DrawEngine(seeded_rng).draw(small_catalog, count)

    def test_same_seed_same_results(self, small_catalog):
        first = DrawEngine(random.Random(7)).draw(small_catalog, 20)
        second = DrawEngine(random.Random(7)).draw(small_catalog, 20)
        assert [r.collectible.id for r in first] == [r.collectible.id for r in second]

    def test_uniform_regardless_of_display_weight(self, small_catalog, seeded_rng):
        trials = 20000
        counts = Counter(r.collectible.id for r in DrawEngine(seeded_rng).draw(small_catalog, trials))

        expected = trials / len(small_catalog)
        assert set(counts) == {item.id for item in small_catalog}
        for collectible_id, seen in counts.items():
            # ~5 standard deviations of a binomial(20000, 0.25)
            assert abs(seen - expected) < 300, collectible_id


class TestWeightedDraw:
    def test_zero_weight_is_never_drawn(self, seeded_rng):
        catalog = [
            Collectible(id="common", name="Common", rarity_tier=RarityTier.NORMAL, display_weight=1.0),
            Collectible(id="never", name="Never", rarity_tier=RarityTier.ULTRA_RARE, display_weight=0.0),
        ]
        results = DrawEngine(seeded_rng, weighted=True).draw(catalog, 500)
        assert {r.collectible.id for r in results} == {"common"}

    def test_weights_bias_the_draw(self, small_catalog, seeded_rng):
        counts = Counter(
            r.collectible.id for r in DrawEngine(seeded_rng, weighted=True).draw(small_catalog, 10000)
        )
        assert counts["parrot"] > counts["party-parrot"] > counts["fast-parrot"] > counts["ultra-fast-parrot"]

    def test_all_zero_weights_fall_back_to_uniform(self, seeded_rng):
        catalog = [
            Collectible(id="a", name="A", display_weight=0.0),
            Collectible(id="b", name="B", display_weight=0.0),
        ]
        results = DrawEngine(seeded_rng, weighted=True).draw(catalog, 200)
        assert {r.collectible.id for r in results} == {"a", "b"}
