"""
Ошибки проверки входных данных ядер.

Все ошибки формы и конфигурации обнаруживаются до запуска параллельной
работы и поднимаются синхронно: частичных результатов не бывает.

Для метрики cumulative_difference отдельной ошибки нет: требование
«признаки: упорядоченные бины гистограммы одинаковой массы» нельзя
проверить автоматически, это предусловие на стороне вызывающего кода.
"""

from __future__ import annotations


class KernelError(ValueError):
    """Базовый класс ошибок входных данных ядер."""


class InvalidDimension(KernelError):
    """Длина буфера не кратна DIM или не совпадает с N/K."""


class InvalidClusterCount(KernelError):
    """K <= 0: не к чему назначать точки."""


class IndexOutOfRange(KernelError):
    """Значение назначения вне диапазона [0, K)."""


class InvalidChunkSize(KernelError):
    """Некорректное разбиение: chunk_size/n_units не положительны или не покрывают N."""


class InvalidBuffer(KernelError):
    """Буфер-приёмник нельзя обновить на месте (не ndarray, read-only, не C-contiguous, не тот dtype)."""
