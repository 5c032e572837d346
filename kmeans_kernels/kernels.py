"""
Функциональный интерфейс к трём ядрам поверх эталонного бэкенда.

Сигнатуры повторяют внешний контракт ядра::

    compute_distances(points, centroids, metric, N, K, DIM, chunk_size) -> distances[N*K]
    assign(distances, N, K) -> assignments[N]
    accumulate(points, assignments, N, K, DIM, sums, counts)  # sums += ..., counts += ...

Буферы sums/counts принадлежат вызывающему коду и только дополняются.
В начале каждой эпохи накопления их нужно обнулить (zero_accumulators);
без обнуления вызов продолжает предыдущую эпоху: так сливаются частичные
результаты нескольких пачек точек.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np

from kmeans_kernels.core.base import KernelConfig, zero_accumulators
from kmeans_kernels.core.cpu_numpy import KernelsCPUNumpy
from kmeans_kernels.core.distance import Metric

__all__ = ["compute_distances", "assign", "accumulate", "zero_accumulators"]


def compute_distances(
    points: Any,
    centroids: Any,
    metric: Metric | str,
    n: int,
    k: int,
    dim: int = 3,
    chunk_size: Optional[int] = None,
) -> np.ndarray:
    backend = KernelsCPUNumpy(KernelConfig(dim=dim, metric=metric))
    return backend.compute_distances(points, centroids, n, k, chunk_size=chunk_size)


def assign(distances: Any, n: int, k: int, chunk_size: Optional[int] = None) -> np.ndarray:
    # DIM в назначении не участвует
    backend = KernelsCPUNumpy(KernelConfig(dim=1))
    return backend.assign(distances, n, k, chunk_size=chunk_size)


def accumulate(
    points: Any,
    assignments: Any,
    n: int,
    k: int,
    dim: int,
    sums: np.ndarray,
    counts: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Добавляет суммы и счётчики кластеров в sums/counts на месте и возвращает их же."""
    backend = KernelsCPUNumpy(KernelConfig(dim=dim))
    return backend.accumulate(points, assignments, n, k, sums, counts)
