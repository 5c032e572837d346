from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np

from kmeans_kernels.core.distance import Metric
from kmeans_kernels.core.errors import InvalidBuffer
from kmeans_kernels.core.partition import (
    DEFAULT_GLOBAL_SIZE,
    default_chunk_size,
    launch_units,
)
from kmeans_kernels.core.validation import (
    accumulator_views,
    as_assignments,
    as_distance_matrix,
    as_rows,
    check_cluster_count,
    check_dim,
    check_point_count,
)
from kmeans_kernels.metrics.timers import StepTimings

SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


@dataclass(frozen=True)
class KernelConfig:
    """
    Параметры прогона, общие для всех бэкендов.

    dim: число признаков (константа на весь прогон), metric: метрика
    расстояния, chunk_size: число точек на единицу исполнения (None:
    вывести из n_units), n_units: число запускаемых единиц (None: по
    умолчанию бэкенда).
    """

    dim: int = 3
    metric: Metric = Metric.SQUARED_EUCLIDEAN
    chunk_size: Optional[int] = None
    n_units: Optional[int] = None
    dtype: Any = np.float64

    def __post_init__(self) -> None:
        # Метрику можно задать строкой: "squared_euclidean" / "cumulative_difference"
        object.__setattr__(self, "metric", Metric(self.metric))
        object.__setattr__(self, "dim", check_dim(self.dim))
        dtype = np.dtype(self.dtype)
        if dtype not in SUPPORTED_DTYPES:
            raise InvalidBuffer(f"dtype must be float32 or float64, got {dtype}")
        object.__setattr__(self, "dtype", dtype)


@dataclass
class StepResult:
    """Результат одного шага Ллойда (без деления sums / counts)."""

    distances: np.ndarray
    assignments: np.ndarray
    sums: np.ndarray
    counts: np.ndarray
    timings: StepTimings


def zero_accumulators(k: int, dim: int, dtype: Any = np.float64) -> Tuple[np.ndarray, np.ndarray]:
    """Обнулённые буферы sums[K*DIM] и counts[K] для новой эпохи накопления."""
    k = check_cluster_count(k)
    dim = check_dim(dim)
    return np.zeros(k * dim, dtype=dtype), np.zeros(k, dtype=np.int64)


class KernelBackend(ABC):
    """
    Базовый класс бэкендов трёх ядер шага Ллойда.

    Отвечает за проверку входов (до любой параллельной работы), выбор
    размера чанка и сборку шага distances → assign → accumulate с
    таймингами. Конкретные бэкенды реализуют только сами ядра:

    - _compute_distances: матрица N × K, параллельно по чанкам точек;
    - _assign: argmin по строке, параллельно по тем же чанкам;
    - _accumulate: суммы/счётчики, параллельно по кластерам (единица c
      владеет кластером c и единственная пишет sums[c] / counts[c]).

    Буферы sums/counts принадлежат вызывающему коду: ядро только
    добавляет в них (``+=``) и никогда не обнуляет. Обнулять их в начале
    каждой эпохи накопления: ответственность вызывающего кода
    (см. zero_accumulators).
    """

    DEFAULT_UNITS = DEFAULT_GLOBAL_SIZE

    def __init__(self, config: KernelConfig = KernelConfig(), logger: Any | None = None) -> None:
        self.config = config
        self.logger = logger

    @property
    def dim(self) -> int:
        return self.config.dim

    @property
    def metric(self) -> Metric:
        return self.config.metric

    @property
    def dtype(self) -> np.dtype:
        return self.config.dtype

    def _default_units(self) -> int:
        return self.DEFAULT_UNITS

    def resolve_chunk_size(self, n: int, chunk_size: Optional[int] = None) -> int:
        """Явный chunk_size, иначе из конфига, иначе ceil(N / число единиц)."""
        if chunk_size is None:
            chunk_size = self.config.chunk_size
        if chunk_size is None:
            n_units = self.config.n_units or self._default_units()
            return default_chunk_size(n, n_units)
        return int(chunk_size)

    # ---------- Публичные операции ----------

    def compute_distances(
        self,
        points: Any,
        centroids: Any,
        n: int,
        k: int,
        chunk_size: Optional[int] = None,
    ) -> np.ndarray:
        """Плоская матрица расстояний ``distances[i*K + c]`` длины N*K."""
        n = check_point_count(n)
        k = check_cluster_count(k)
        X = as_rows(points, n, self.dim, "points", self.dtype)
        C = as_rows(centroids, k, self.dim, "centroids", self.dtype)
        cs = self.resolve_chunk_size(n, chunk_size)
        units = self._launch_units(n, cs)
        return self._compute_distances(X, C, n, k, cs, units).reshape(-1)

    def assign(
        self,
        distances: Any,
        n: int,
        k: int,
        chunk_size: Optional[int] = None,
    ) -> np.ndarray:
        """Индекс ближайшего центроида (int32) для каждой точки; ничья: меньший индекс."""
        n = check_point_count(n)
        k = check_cluster_count(k)
        D = as_distance_matrix(distances, n, k, self.dtype)
        cs = self.resolve_chunk_size(n, chunk_size)
        units = self._launch_units(n, cs)
        return self._assign(D, n, k, cs, units)

    def accumulate(
        self,
        points: Any,
        assignments: Any,
        n: int,
        k: int,
        sums: np.ndarray,
        counts: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Добавляет в sums[K*DIM] и counts[K] суммы признаков и число точек
        каждого кластера.

        Повторные вызовы на разных пачках точек в одни и те же буферы дают
        тот же итог, что один вызов на всём наборе.
        """
        n = check_point_count(n)
        k = check_cluster_count(k)
        X = as_rows(points, n, self.dim, "points", self.dtype)
        labels = as_assignments(assignments, n, k)
        sums_view, counts_view = accumulator_views(sums, counts, k, self.dim)
        self._accumulate(X, labels, n, k, sums_view, counts_view)
        return sums, counts

    def nearest(
        self,
        points: Any,
        centroids: Any,
        n: int,
        k: int,
        chunk_size: Optional[int] = None,
    ) -> np.ndarray:
        """Назначение без возврата матрицы расстояний вызывающему коду."""
        distances = self.compute_distances(points, centroids, n, k, chunk_size)
        return self.assign(distances, n, k, chunk_size)

    def lloyd_step(
        self,
        points: Any,
        centroids: Any,
        n: int,
        k: int,
        sums: np.ndarray | None = None,
        counts: np.ndarray | None = None,
        chunk_size: Optional[int] = None,
    ) -> StepResult:
        """
        Один шаг Ллойда: distances → assignments → accumulate.

        Без sums/counts выделяются новые обнулённые буферы (новая эпоха).
        Деление на counts и проверка сходимости остаются вызывающему коду.
        """
        if (sums is None) != (counts is None):
            raise InvalidBuffer("sums and counts must be supplied together")
        if sums is None:
            sums, counts = zero_accumulators(k, self.dim, self.dtype)
        else:
            # Все ошибки формы: до запуска первого ядра
            check_cluster_count(k)
            accumulator_views(sums, counts, k, self.dim)

        timings = StepTimings()
        with timings.phase("distances"):
            distances = self.compute_distances(points, centroids, n, k, chunk_size)
        with timings.phase("assign"):
            assignments = self.assign(distances, n, k, chunk_size)
        with timings.phase("accumulate"):
            self.accumulate(points, assignments, n, k, sums, counts)

        if self.logger:
            self.logger.info(
                f"  Step {type(self).__name__} "
                f"(T_distances={timings.get('distances'):.6f}s, "
                f"T_assign={timings.get('assign'):.6f}s, "
                f"T_accumulate={timings.get('accumulate'):.6f}s)"
            )

        return StepResult(
            distances=distances,
            assignments=assignments,
            sums=sums,
            counts=counts,
            timings=timings,
        )

    def _launch_units(self, n: int, chunk_size: int) -> int:
        return launch_units(n, chunk_size, self.config.n_units)

    # ---------- Ядра ----------

    @abstractmethod
    def _compute_distances(
        self, X: np.ndarray, centroids: np.ndarray, n: int, k: int, chunk_size: int, units: int
    ) -> np.ndarray:
        """Матрица расстояний (N, K)."""
        raise NotImplementedError

    @abstractmethod
    def _assign(
        self, distances: np.ndarray, n: int, k: int, chunk_size: int, units: int
    ) -> np.ndarray:
        """Вектор назначений (N,) int32."""
        raise NotImplementedError

    @abstractmethod
    def _accumulate(
        self,
        X: np.ndarray,
        labels: np.ndarray,
        n: int,
        k: int,
        sums: np.ndarray,
        counts: np.ndarray,
    ) -> None:
        """Добавить суммы/счётчики кластеров в представления sums (K, D) и counts (K,)."""
        raise NotImplementedError
