"""Tests for seed derivation and cancellation."""

import pytest

from goldfish.core.exceptions import SimulationCancelled
from goldfish.services.seeding import CancellationToken, derive_seed


class TestDeriveSeed:
    """Tests for derive_seed."""

    def test_stable(self):
        assert derive_seed(42, 0) == derive_seed(42, 0)

    def test_fits_in_64_bits(self):
        seed = derive_seed(42, 7, "shuffle")

        assert 0 <= seed < 2**64

    def test_positions_differ(self):
        seeds = {derive_seed(42, i) for i in range(100)}

        assert len(seeds) == 100

    def test_streams_differ(self):
        assert derive_seed(42, "shuffle") != derive_seed(42, "strategy")

    def test_parent_matters(self):
        assert derive_seed(1, 0) != derive_seed(2, 0)


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_starts_clear(self):
        token = CancellationToken()

        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()

        assert token.cancelled
        with pytest.raises(SimulationCancelled):
            token.raise_if_cancelled()
