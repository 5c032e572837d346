"""
Разбиение пространства индексов точек на непрерывные чанки.

Единица исполнения ``unit_id`` владеет точками ``[start, end)``, где
``start = unit_id * chunk_size`` и ``end = min(start + chunk_size, N)``.
Единица с ``start >= N`` ничего не делает: это допустимо.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .errors import InvalidChunkSize

# Глобальный размер запуска по умолчанию (число единиц исполнения)
DEFAULT_GLOBAL_SIZE = 1024


def _check_positive(value: int, name: str) -> int:
    value = int(value)
    if value <= 0:
        raise InvalidChunkSize(f"{name} must be positive, got {value}")
    return value


def default_chunk_size(n: int, n_units: int = DEFAULT_GLOBAL_SIZE) -> int:
    """Размер чанка так, чтобы ``n_units`` единиц покрыли ``n`` точек (не меньше 1)."""
    n_units = _check_positive(n_units, "n_units")
    return max(1, -(-int(n) // n_units))


def unit_count(n: int, chunk_size: int) -> int:
    """Минимальное число единиц, покрывающее ``n`` точек чанками ``chunk_size``."""
    chunk_size = _check_positive(chunk_size, "chunk_size")
    return -(-int(n) // chunk_size)


def launch_units(n: int, chunk_size: int, n_units: Optional[int] = None) -> int:
    """
    Число запускаемых единиц.

    Без ``n_units``: ровно столько, сколько нужно для покрытия. С явным
    ``n_units`` запускается ровно столько единиц (лишние простаивают), но
    они обязаны покрыть все точки.
    """
    needed = unit_count(n, chunk_size)
    if n_units is None:
        return needed
    n_units = _check_positive(n_units, "n_units")
    if n_units < needed:
        raise InvalidChunkSize(
            f"{n_units} units of chunk_size={chunk_size} do not cover N={n}"
        )
    return n_units


def chunk_bounds(unit_id: int, chunk_size: int, n: int) -> Tuple[int, int]:
    """Полуинтервал точек единицы; пустой, если ``start >= n``."""
    start = unit_id * chunk_size
    if start >= n:
        return start, start
    return start, min(start + chunk_size, n)
