"""
Метрики производительности бэкендов.

Ускорение и эффективность считаются относительно последовательного
бэкенда (KernelsCPUNumpy), пропускная способность: в покоординатных
операциях расстояния в секунду.
"""

from __future__ import annotations


def speedup(t_serial: float, t_parallel: float) -> float:
    """
    Ускорение параллельного бэкенда: ``t_serial / t_parallel``.

    Raises:
        ZeroDivisionError: Если t_parallel равно нулю
    """
    if t_parallel == 0:
        raise ZeroDivisionError("Parallel time cannot be zero")
    return t_serial / t_parallel


def efficiency(speedup: float, p: int) -> float:
    """
    Параллельная эффективность: ускорение на одну единицу параллелизма.

    Для пула процессов ``p``: число процессов; 1.0 соответствует
    линейному ускорению.

    Raises:
        ZeroDivisionError: Если p равно нулю
    """
    if p == 0:
        raise ZeroDivisionError("Number of processes cannot be zero")
    return speedup / p


def throughput(N: int, K: int, DIM: int, n_steps: int, total_time: float) -> float:
    """
    Пропускная способность: ``N * K * DIM * n_steps / total_time``.

    Каждый шаг вычисляет полную матрицу расстояний N × K, по DIM
    операций на элемент.

    Raises:
        ZeroDivisionError: Если total_time равно нулю
    """
    if total_time == 0:
        raise ZeroDivisionError("Total time cannot be zero")
    return (N * K * DIM * n_steps) / total_time
