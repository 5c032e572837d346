from __future__ import annotations

from dataclasses import dataclass
from multiprocessing import Pool, RawArray, cpu_count
from typing import Any, List, Optional, Tuple

import numpy as np

from kmeans_kernels.core.base import KernelBackend, KernelConfig
from kmeans_kernels.core.distance import first_minimum_index, get_chunk_kernel
from kmeans_kernels.core.partition import chunk_bounds


@dataclass(frozen=True)
class MultiprocessingConfig:
    """Параметры пула процессов."""

    n_processes: int = 4


# --- Глобальное состояние: shared points в воркерах ---
_SHARED_POINTS_BUF: RawArray | None = None
_SHARED_POINTS_DTYPE: np.dtype | None = None


def _init_shared_points(raw: RawArray, dtype: str) -> None:
    """Инициализатор пула: регистрирует shared буфер точек."""
    global _SHARED_POINTS_BUF, _SHARED_POINTS_DTYPE
    _SHARED_POINTS_BUF = raw
    _SHARED_POINTS_DTYPE = np.dtype(dtype)


def _get_shared_points(n: int, dim: int) -> np.ndarray:
    """NumPy-представление первых n точек shared буфера (только чтение)."""
    assert _SHARED_POINTS_BUF is not None and _SHARED_POINTS_DTYPE is not None
    arr = np.frombuffer(_SHARED_POINTS_BUF, dtype=_SHARED_POINTS_DTYPE)
    return arr[: n * dim].reshape(n, dim)


def _distances_unit_worker(
    args: Tuple[int, int, int, int, np.ndarray, str]
) -> np.ndarray:
    """Строки матрицы расстояний для точек одной единицы; пустой блок, если start >= N."""
    unit_id, chunk_size, n, dim, centroids, metric = args
    start, end = chunk_bounds(unit_id, chunk_size, n)
    if start >= end:
        return np.empty((0, centroids.shape[0]), dtype=centroids.dtype)
    X = _get_shared_points(n, dim)
    return get_chunk_kernel(metric)(X[start:end], centroids)


def _assign_unit_worker(distances_chunk: np.ndarray) -> np.ndarray:
    """Назначение для строк одной единицы."""
    if distances_chunk.shape[0] == 0:
        return np.empty(0, dtype=np.int32)
    return first_minimum_index(distances_chunk)


def _accumulate_cluster_worker(
    args: Tuple[int, np.ndarray, int, int]
) -> Tuple[np.ndarray, int]:
    """
    Единица-владелец кластера c: один последовательный проход по всем точкам.

    Возвращает локальные (sum[DIM], count); запись в общие буферы делает
    только вызывающий процесс, по одному разу на кластер.
    """
    c, labels, n, dim = args
    X = _get_shared_points(n, dim)
    local_sum = np.zeros(dim, dtype=X.dtype)
    mask = labels == c
    local_count = int(np.count_nonzero(mask))
    if local_count:
        local_sum += X[mask].sum(axis=0)
    return local_sum, local_count


class KernelsCPUMultiprocessing(KernelBackend):
    """
    Ядра на пуле процессов с shared points.

    Пул и shared буфер создаются лениво и переиспользуются между вызовами;
    буфер пересоздаётся только если новые точки в него не помещаются.
    Пул закрывается через close() или выход из контекстного менеджера.
    """

    def __init__(
        self,
        config: KernelConfig = KernelConfig(),
        mp: MultiprocessingConfig = MultiprocessingConfig(),
        logger: Any | None = None,
    ) -> None:
        super().__init__(config=config, logger=logger)
        self.mp = mp

        self._pool: Optional[Pool] = None
        self._raw: RawArray | None = None
        self._capacity: int = 0

    @property
    def n_processes(self) -> int:
        return max(1, min(int(self.mp.n_processes), cpu_count()))

    def _default_units(self) -> int:
        # По одному чанку на процесс, как np.array_split
        return self.n_processes

    # --- Пул и shared точки ---

    def _ensure_pool(self, capacity: int = 0) -> Pool:
        """Ленивая инициализация пула с shared буфером не меньше capacity элементов."""
        if self._pool is not None and capacity <= self._capacity:
            return self._pool

        self.close()
        capacity = max(capacity, 1)
        typecode = self.dtype.char  # 'd' для float64, 'f' для float32
        self._raw = RawArray(typecode, capacity)
        self._capacity = capacity

        # Пул инициализирует ссылку на shared буфер в каждом процессе
        self._pool = Pool(
            processes=self.n_processes,
            initializer=_init_shared_points,
            initargs=(self._raw, self.dtype.str),
        )
        if self.logger:
            self.logger.info(
                f"  Pool started (processes={self.n_processes}, capacity={capacity})"
            )
        return self._pool

    def _share_points(self, X: np.ndarray) -> Pool:
        """Копирует точки в shared буфер до раздачи задач воркерам."""
        pool = self._ensure_pool(int(X.size))
        assert self._raw is not None
        shared_view = np.frombuffer(self._raw, dtype=self.dtype)
        shared_view[: X.size] = X.reshape(-1)
        return pool

    def close(self) -> None:
        """Закрыть пул."""
        if self._pool is not None:
            self._pool.close()
            self._pool.join()
        self._pool = None
        self._raw = None
        self._capacity = 0

    def __enter__(self) -> KernelsCPUMultiprocessing:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ---------- Distances (parallel over point chunks) ----------

    def _compute_distances(self, X, centroids, n, k, chunk_size, units):
        distances = np.empty((n, k), dtype=self.dtype)
        if n == 0:
            return distances
        pool = self._share_points(X)

        args: List[Tuple[int, int, int, int, np.ndarray, str]] = [
            (unit_id, chunk_size, n, self.dim, centroids, self.metric.value)
            for unit_id in range(units)
        ]
        blocks = pool.map(_distances_unit_worker, args)

        for unit_id, block in enumerate(blocks):
            start, end = chunk_bounds(unit_id, chunk_size, n)
            if start < end:
                distances[start:end] = block
        return distances

    # ---------- Assignment (parallel over point chunks) ----------

    def _assign(self, distances, n, k, chunk_size, units):
        labels = np.empty(n, dtype=np.int32)
        if n == 0:
            return labels
        pool = self._ensure_pool()

        bounds = [chunk_bounds(unit_id, chunk_size, n) for unit_id in range(units)]
        results = pool.map(
            _assign_unit_worker, [distances[start:end] for start, end in bounds]
        )

        for (start, end), lbl_chunk in zip(bounds, results):
            if start < end:
                labels[start:end] = lbl_chunk
        return labels

    # ---------- Accumulate (one unit per cluster) ----------

    def _accumulate(self, X, labels, n, k, sums, counts):
        if n == 0:
            return
        pool = self._share_points(X)

        args_list: List[Tuple[int, np.ndarray, int, int]] = [
            (c, labels, n, self.dim) for c in range(k)
        ]
        # map возвращает управление после завершения всех единиц:
        # это и есть точка синхронизации перед финальной записью
        partials: List[Tuple[np.ndarray, int]] = pool.map(
            _accumulate_cluster_worker, args_list
        )

        for c, (local_sum, local_count) in enumerate(partials):
            sums[c] += local_sum
            counts[c] += local_count
