"""
Метрики расстояния точка × центроид.

Два варианта, выбираются один раз на прогон (не смешиваются внутри одной
матрицы расстояний):

- squared_euclidean: сумма квадратов покоординатных разностей (без корня:
  для сравнения расстояний достаточно монотонной квадратичной формы);
- cumulative_difference: замкнутая форма 1-D earth-mover distance между
  двумя упорядоченными гистограммами одинаковой массы: префиксные суммы
  покоординатных разностей, затем сумма модулей.

Для каждой метрики есть скалярная функция (одна пара векторов) и
«чанковая» функция (блок точек × все центроиды), которой пользуются
CPU-бэкенды.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict

import numpy as np

from .errors import InvalidDimension


class Metric(str, Enum):
    SQUARED_EUCLIDEAN = "squared_euclidean"
    CUMULATIVE_DIFFERENCE = "cumulative_difference"


def _difference(point: np.ndarray, centroid: np.ndarray) -> np.ndarray:
    p = np.asarray(point, dtype=np.float64).reshape(-1)
    c = np.asarray(centroid, dtype=np.float64).reshape(-1)
    if p.shape != c.shape:
        raise InvalidDimension(
            f"point has {p.size} features, centroid has {c.size}"
        )
    # Новый массив: входы не изменяются
    return p - c


def squared_euclidean(point: np.ndarray, centroid: np.ndarray) -> float:
    """Квадрат евклидова расстояния, суммирование по возрастанию индекса признака."""
    diff = _difference(point, centroid)
    total = 0.0
    for value in diff:
        total += value * value
    return float(total)


def cumulative_difference(point: np.ndarray, centroid: np.ndarray) -> float:
    """
    Расстояние по префиксным суммам разностей (1-D Wasserstein).

    Имеет смысл только если признаки: упорядоченные бины гистограммы
    одинаковой суммарной массы; это предусловие не проверяется.

    Пример: (3, 2, 1) против (1, 2, 3) → разности (2, 0, -2),
    префиксные суммы (2, 2, 0), расстояние 4.
    """
    diff = _difference(point, centroid)
    np.cumsum(diff, out=diff)
    return float(np.sum(np.abs(diff)))


def squared_euclidean_chunk(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    # (m, K, D) → (m, K); признаки складываются по возрастанию индекса,
    # как в squared_euclidean
    diff = X[:, None, :] - centroids[None, :, :]
    out = diff[..., 0] * diff[..., 0]
    for f in range(1, diff.shape[2]):
        out += diff[..., f] * diff[..., f]
    return out


def cumulative_difference_chunk(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    diff = X[:, None, :] - centroids[None, :, :]
    np.cumsum(diff, axis=2, out=diff)
    np.abs(diff, out=diff)
    return diff.sum(axis=2)


def first_minimum_index(distances: np.ndarray) -> np.ndarray:
    """
    Индекс ближайшего центроида для каждой строки блока ``(m, K)``.

    Построчный скан слева направо: текущий лучший индекс заменяется только
    строго меньшим расстоянием. Ничья остаётся за меньшим индексом, NaN
    никогда не вытесняет текущий лучший (сравнение с NaN ложно), а NaN в
    столбце 0 так и остаётся выбранным.
    """
    lowest = np.zeros(distances.shape[0], dtype=np.int32)
    if distances.shape[1] == 0:
        return lowest
    best = distances[:, 0].copy()
    for c in range(1, distances.shape[1]):
        column = distances[:, c]
        better = best > column
        lowest[better] = c
        best[better] = column[better]
    return lowest


DISTANCE_FUNCTIONS: Dict[Metric, Callable[[np.ndarray, np.ndarray], float]] = {
    Metric.SQUARED_EUCLIDEAN: squared_euclidean,
    Metric.CUMULATIVE_DIFFERENCE: cumulative_difference,
}

CHUNK_KERNELS: Dict[Metric, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    Metric.SQUARED_EUCLIDEAN: squared_euclidean_chunk,
    Metric.CUMULATIVE_DIFFERENCE: cumulative_difference_chunk,
}


def get_distance_fn(metric: Metric | str) -> Callable[[np.ndarray, np.ndarray], float]:
    """Скалярная функция расстояния по значению перечисления (или его строке)."""
    return DISTANCE_FUNCTIONS[Metric(metric)]


def get_chunk_kernel(metric: Metric | str) -> Callable[[np.ndarray, np.ndarray], np.ndarray]:
    """Векторизованное ядро «блок точек × все центроиды» для метрики."""
    return CHUNK_KERNELS[Metric(metric)]
