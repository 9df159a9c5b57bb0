"""Tests for vc_forecast.rng — injectable random sources."""
from __future__ import annotations

import pytest

from vc_forecast.rng import (
    DEFAULT_SEED,
    LehmerRandom,
    NumpyRandomSource,
    RandomSource,
    default_random_source,
)


class TestLehmerRandom:
    def test_first_value(self):
        assert LehmerRandom(12345).next() == pytest.approx(207_482_415 / 2_147_483_647)

    def test_same_seed_same_sequence(self):
        a, b = LehmerRandom(7), LehmerRandom(7)
        assert [a.next() for _ in range(50)] == [b.next() for _ in range(50)]

    def test_values_in_unit_interval(self):
        rng = LehmerRandom(1)
        assert all(0.0 < rng.next() < 1.0 for _ in range(1_000))

    @pytest.mark.parametrize("seed", [0, 2_147_483_647])
    def test_degenerate_seed(self, seed):
        with pytest.raises(ValueError):
            LehmerRandom(seed)

    def test_default_source(self):
        rng = default_random_source()
        assert isinstance(rng, LehmerRandom)
        assert rng.seed == DEFAULT_SEED


class TestNumpyRandomSource:
    def test_seeded_is_reproducible(self):
        a, b = NumpyRandomSource(3), NumpyRandomSource(3)
        assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]

    def test_values_in_unit_interval(self):
        rng = NumpyRandomSource()
        assert all(0.0 <= rng.next() < 1.0 for _ in range(100))


class TestProtocol:
    @pytest.mark.parametrize("source", [LehmerRandom(), NumpyRandomSource(0)])
    def test_sources_satisfy_protocol(self, source):
        assert isinstance(source, RandomSource)

    def test_scripted_source_satisfies_protocol(self, scripted_rng):
        assert isinstance(scripted_rng(0.5), RandomSource)
