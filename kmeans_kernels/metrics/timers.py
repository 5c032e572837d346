"""
Таймеры фаз шага Ллойда.

Timer: контекстный менеджер на time.perf_counter(); StepTimings
собирает время по именованным фазам (distances / assign / accumulate).
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator


class Timer:
    """
    Контекстный менеджер для замера времени участка кода.

    Пример использования:
        with Timer() as t:
            backend.assign(distances, n, k)
        elapsed_time = t.elapsed
    """

    def __init__(self) -> None:
        self.start: float = 0.0
        self.end: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> Timer:
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end = time.perf_counter()
        self.elapsed = self.end - self.start


@dataclass
class StepTimings:
    """Время по фазам (секунды); повторные замеры одной фазы суммируются."""

    phases: Dict[str, float] = field(default_factory=dict)

    @contextmanager
    def phase(self, name: str) -> Iterator[Timer]:
        with Timer() as t:
            yield t
        self.phases[name] = self.phases.get(name, 0.0) + t.elapsed

    def get(self, name: str) -> float:
        return self.phases.get(name, 0.0)

    @property
    def total(self) -> float:
        return sum(self.phases.values())

    def merge(self, other: StepTimings) -> StepTimings:
        """Добавляет тайминги другого шага (для накопления по нескольким шагам)."""
        for name, elapsed in other.phases.items():
            self.phases[name] = self.phases.get(name, 0.0) + elapsed
        return self
