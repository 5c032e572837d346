"""
Проверка формы входных буферов до запуска параллельной работы.

Входы принимаются как плоские буферы (``N * DIM`` элементов, point-major)
или как уже сформированные массивы ``(N, DIM)``; наружу отдаются
C-contiguous представления нужной формы.
"""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

from .errors import (
    IndexOutOfRange,
    InvalidBuffer,
    InvalidClusterCount,
    InvalidDimension,
)


def check_dim(dim: int) -> int:
    dim = int(dim)
    if dim <= 0:
        raise InvalidDimension(f"DIM must be positive, got {dim}")
    return dim


def check_cluster_count(k: int) -> int:
    k = int(k)
    if k <= 0:
        raise InvalidClusterCount(f"K must be positive, got {k}")
    return k


def check_point_count(n: int) -> int:
    n = int(n)
    if n < 0:
        raise InvalidDimension(f"N must be non-negative, got {n}")
    return n


def as_rows(buffer: Any, rows: int, dim: int, name: str, dtype: Any = np.float64) -> np.ndarray:
    """
    Приводит буфер к C-contiguous массиву ``(rows, dim)``.

    Raises:
        InvalidDimension: длина не кратна ``dim`` или не равна ``rows * dim``
    """
    arr = np.ascontiguousarray(buffer, dtype=dtype).reshape(-1)
    if arr.size % dim != 0:
        raise InvalidDimension(
            f"{name}: length {arr.size} is not a multiple of DIM={dim}"
        )
    if arr.size != rows * dim:
        raise InvalidDimension(
            f"{name}: expected {rows} x {dim} = {rows * dim} values, got {arr.size}"
        )
    return arr.reshape(rows, dim)


def as_distance_matrix(buffer: Any, n: int, k: int, dtype: Any = np.float64) -> np.ndarray:
    arr = np.ascontiguousarray(buffer, dtype=dtype).reshape(-1)
    if arr.size != n * k:
        raise InvalidDimension(
            f"distances: expected {n} x {k} = {n * k} values, got {arr.size}"
        )
    return arr.reshape(n, k)


def as_assignments(buffer: Any, n: int, k: int) -> np.ndarray:
    """
    Проверяет внешний вектор назначений для аккумулятора.

    Значения вне ``[0, K)`` отклоняются, а не пропускаются молча при
    сканировании.
    """
    arr = np.asarray(buffer).reshape(-1)
    if arr.size != n:
        raise InvalidDimension(f"assignments: expected {n} values, got {arr.size}")
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise InvalidBuffer(f"assignments must be integers, got dtype {arr.dtype}")
    if arr.size:
        lo, hi = int(arr.min()), int(arr.max())
        if lo < 0 or hi >= k:
            bad = lo if lo < 0 else hi
            raise IndexOutOfRange(f"assignment {bad} is outside [0, {k})")
    return np.ascontiguousarray(arr, dtype=np.int32)


def _writable_view(buffer: Any, size: int, name: str) -> np.ndarray:
    if not isinstance(buffer, np.ndarray):
        raise InvalidBuffer(f"{name} must be a numpy.ndarray, got {type(buffer).__name__}")
    if not buffer.flags.writeable:
        raise InvalidBuffer(f"{name} is read-only")
    if not buffer.flags.c_contiguous:
        raise InvalidBuffer(f"{name} must be C-contiguous to be updated in place")
    if buffer.size != size:
        raise InvalidDimension(f"{name}: expected {size} values, got {buffer.size}")
    # reshape C-contiguous массива: всегда view, запись видна вызывающему
    return buffer.reshape(-1)


def accumulator_views(sums: Any, counts: Any, k: int, dim: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Представления ``(K, DIM)`` и ``(K,)`` поверх буферов вызывающего кода.

    Буферы обновляются на месте (``+=``), поэтому копии недопустимы.
    """
    sums_flat = _writable_view(sums, k * dim, "sums")
    counts_flat = _writable_view(counts, k, "counts")
    if not np.issubdtype(sums_flat.dtype, np.floating):
        raise InvalidBuffer(f"sums must be floating point, got dtype {sums_flat.dtype}")
    if not np.issubdtype(counts_flat.dtype, np.integer):
        raise InvalidBuffer(f"counts must be integers, got dtype {counts_flat.dtype}")
    return sums_flat.reshape(k, dim), counts_flat
