# core/cpu_numpy.py
from __future__ import annotations

import numpy as np

from .base import KernelBackend
from .distance import first_minimum_index, get_chunk_kernel
from .partition import chunk_bounds


class KernelsCPUNumpy(KernelBackend):
    """Однопоточная эталонная реализация: единицы исполнения обходятся по порядку."""

    def _compute_distances(
        self, X: np.ndarray, centroids: np.ndarray, n: int, k: int, chunk_size: int, units: int
    ) -> np.ndarray:
        kernel = get_chunk_kernel(self.metric)
        distances = np.empty((n, k), dtype=self.dtype)
        for unit_id in range(units):
            start, end = chunk_bounds(unit_id, chunk_size, n)
            if start >= end:
                continue
            distances[start:end] = kernel(X[start:end], centroids)
        return distances

    def _assign(
        self, distances: np.ndarray, n: int, k: int, chunk_size: int, units: int
    ) -> np.ndarray:
        labels = np.empty(n, dtype=np.int32)
        for unit_id in range(units):
            start, end = chunk_bounds(unit_id, chunk_size, n)
            if start >= end:
                continue
            labels[start:end] = first_minimum_index(distances[start:end])
        return labels

    def _accumulate(
        self,
        X: np.ndarray,
        labels: np.ndarray,
        n: int,
        k: int,
        sums: np.ndarray,
        counts: np.ndarray,
    ) -> None:
        # Единица c владеет кластером c: один проход по всем точкам,
        # затем единственная запись в sums[c] / counts[c]
        for c in range(k):
            mask = labels == c
            local_count = int(np.count_nonzero(mask))
            if local_count == 0:
                continue
            sums[c] += X[mask].sum(axis=0)
            counts[c] += local_count
