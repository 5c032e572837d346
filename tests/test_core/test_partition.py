"""
Тесты разбиения индексов точек на чанки.
"""

import pytest
from kmeans_kernels.core.errors import InvalidChunkSize
from kmeans_kernels.core.partition import (
    chunk_bounds,
    default_chunk_size,
    launch_units,
    unit_count,
)


class TestChunkBounds:
    def test_contiguous_cover(self):
        """Чанки покрывают [0, N) без пересечений и пропусков."""
        n, cs = 103, 10
        covered = []
        for unit_id in range(unit_count(n, cs)):
            start, end = chunk_bounds(unit_id, cs, n)
            covered.extend(range(start, end))
        assert covered == list(range(n))

    def test_last_chunk_is_clipped(self):
        assert chunk_bounds(10, 10, 103) == (100, 103)

    def test_idle_unit(self):
        """Единица за пределами N ничего не делает: это не ошибка."""
        start, end = chunk_bounds(50, 10, 103)
        assert start >= end
        assert list(range(start, end)) == []


class TestChunkSizing:
    def test_default_chunk_size(self):
        # ceil(N / 1024)
        assert default_chunk_size(1024) == 1
        assert default_chunk_size(1025) == 2
        assert default_chunk_size(10_000) == 10
        assert default_chunk_size(0) == 1
        assert default_chunk_size(10, n_units=4) == 3

    def test_unit_count(self):
        assert unit_count(0, 5) == 0
        assert unit_count(10, 5) == 2
        assert unit_count(11, 5) == 3

    def test_launch_units_with_idle(self):
        assert launch_units(10, 3) == 4
        assert launch_units(10, 3, n_units=16) == 16

    def test_launch_units_must_cover(self):
        with pytest.raises(InvalidChunkSize):
            launch_units(100, 3, n_units=4)

    @pytest.mark.parametrize("bad", [0, -1])
    def test_non_positive(self, bad):
        with pytest.raises(InvalidChunkSize):
            unit_count(10, bad)
        with pytest.raises(InvalidChunkSize):
            default_chunk_size(10, n_units=bad)
