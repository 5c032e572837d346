"""
Тесты бэкенда на пуле процессов.
"""

import numpy as np
import pytest
from kmeans_kernels.core.base import KernelConfig, zero_accumulators
from kmeans_kernels.core.cpu_multiprocessing import (
    KernelsCPUMultiprocessing,
    MultiprocessingConfig,
)
from kmeans_kernels.core.distance import Metric
from kmeans_kernels.core.errors import IndexOutOfRange, KernelError


@pytest.fixture
def mp_backend():
    backend = KernelsCPUMultiprocessing(
        KernelConfig(dim=3),
        mp=MultiprocessingConfig(n_processes=2),
    )
    yield backend
    backend.close()


class TestKernelsCPUMultiprocessing:
    """Тесты трёх ядер на пуле процессов."""

    def test_example(self, mp_backend, example_pair):
        points, centroids = example_pair

        result = mp_backend.lloyd_step(points, centroids, 2, 2)

        np.testing.assert_array_equal(result.distances, [0.0, 300.0, 300.0, 0.0])
        np.testing.assert_array_equal(result.assignments, [0, 1])
        np.testing.assert_array_equal(result.sums, [0.0, 0.0, 0.0, 10.0, 10.0, 10.0])
        np.testing.assert_array_equal(result.counts, [1, 1])

    @pytest.mark.parametrize("chunk_size", [1, 17, 120])
    def test_partition_invariance(self, mp_backend, small_dataset, chunk_size):
        X, C, n, k = small_dataset

        whole = mp_backend.compute_distances(X, C, n, k, chunk_size=n)
        chunked = mp_backend.compute_distances(X, C, n, k, chunk_size=chunk_size)
        np.testing.assert_array_equal(whole, chunked)

        np.testing.assert_array_equal(
            mp_backend.assign(whole, n, k, chunk_size=n),
            mp_backend.assign(whole, n, k, chunk_size=chunk_size),
        )

    def test_idle_units(self, small_dataset):
        X, C, n, k = small_dataset
        with KernelsCPUMultiprocessing(
            KernelConfig(dim=3, chunk_size=100, n_units=8),
            mp=MultiprocessingConfig(n_processes=2),
        ) as backend:
            labels = backend.nearest(X, C, n, k)
        assert labels.shape == (n,)
        assert np.all((labels >= 0) & (labels < k))

    def test_additive_halves(self, mp_backend, small_dataset):
        X, C, n, k = small_dataset
        labels = mp_backend.nearest(X, C, n, k)
        half = n // 2

        sums_full, counts_full = zero_accumulators(k, 3)
        mp_backend.accumulate(X, labels, n, k, sums_full, counts_full)

        sums_split, counts_split = zero_accumulators(k, 3)
        mp_backend.accumulate(X[: half * 3], labels[:half], half, k, sums_split, counts_split)
        mp_backend.accumulate(X[half * 3:], labels[half:], n - half, k, sums_split, counts_split)

        np.testing.assert_allclose(sums_full, sums_split, rtol=1e-12)
        np.testing.assert_array_equal(counts_full, counts_split)

    def test_pool_reused_and_grown(self, mp_backend, small_dataset):
        """Пул переиспользуется, пока точки помещаются в shared буфер."""
        X, C, n, k = small_dataset

        mp_backend.compute_distances(X[: 10 * 3], C, 10, k)
        pool = mp_backend._pool
        mp_backend.compute_distances(X[: 5 * 3], C, 5, k)
        assert mp_backend._pool is pool

        # Больший набор точек пересоздаёт буфер и пул
        distances = mp_backend.compute_distances(X, C, n, k)
        assert mp_backend._capacity >= n * 3
        assert distances.shape == (n * k,)

    def test_validation_before_dispatch(self, mp_backend):
        sums, counts = zero_accumulators(2, 3)
        with pytest.raises(IndexOutOfRange):
            mp_backend.accumulate(np.zeros(6), [0, 5], 2, 2, sums, counts)
        # пул не поднимался
        assert mp_backend._pool is None

    def test_close_is_idempotent(self, small_dataset):
        X, C, n, k = small_dataset
        backend = KernelsCPUMultiprocessing(
            KernelConfig(dim=3), mp=MultiprocessingConfig(n_processes=2)
        )
        backend.compute_distances(X, C, n, k)
        backend.close()
        backend.close()
        assert backend._pool is None

    def test_cumulative_difference(self, histogram_dataset):
        X, C, n, k = histogram_dataset
        config = KernelConfig(dim=5, metric=Metric.CUMULATIVE_DIFFERENCE)
        with KernelsCPUMultiprocessing(config, mp=MultiprocessingConfig(n_processes=2)) as backend:
            distances = backend.compute_distances(X, C, n, k)
        assert distances.shape == (n * k,)
        assert np.all(distances >= 0)

    def test_nan_rows_match_serial(self, mp_backend):
        distances = np.array([
            [1.0, np.nan, 0.5],
            [np.nan, 2.0, 1.0],
            [3.0, 2.0, np.nan],
        ])
        labels = mp_backend.assign(distances.reshape(-1), 3, 3, chunk_size=1)
        np.testing.assert_array_equal(labels, [2, 0, 1])

    def test_float16_rejected_before_pool(self):
        with pytest.raises(KernelError):
            KernelsCPUMultiprocessing(
                KernelConfig(dim=3, dtype=np.float16),
                mp=MultiprocessingConfig(n_processes=2),
            )
