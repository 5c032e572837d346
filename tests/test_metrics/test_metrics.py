"""
Тесты метрик производительности бэкендов.
"""

import pytest
from kmeans_kernels.metrics.metrics import efficiency, speedup, throughput


class TestSpeedup:
    """Тесты вычисления ускорения."""

    def test_speedup_basic(self):
        # cpu_numpy 10 секунд, cpu_mp 5 секунд → 2x
        assert speedup(10.0, 5.0) == 2.0

    def test_speedup_slower(self):
        """Параллельный бэкенд медленнее последовательного (накладные расходы пула)."""
        assert speedup(1.0, 4.0) == 0.25

    def test_speedup_zero_parallel_time(self):
        with pytest.raises(ZeroDivisionError):
            speedup(10.0, 0.0)


class TestEfficiency:
    """Тесты вычисления эффективности."""

    def test_efficiency_linear(self):
        assert efficiency(4.0, 4) == 1.0

    def test_efficiency_sublinear(self):
        assert efficiency(3.0, 4) == 0.75

    def test_efficiency_zero_processes(self):
        with pytest.raises(ZeroDivisionError):
            efficiency(2.0, 0)


class TestThroughput:
    """Тесты пропускной способности по матрице расстояний."""

    def test_throughput_basic(self):
        # 1000 точек × 8 кластеров × 3 признака × 5 шагов за 2 секунды
        assert throughput(1000, 8, 3, 5, 2.0) == 60000.0

    def test_throughput_single_step(self):
        N, K, DIM = 200_000, 16, 3
        assert throughput(N, K, DIM, 1, 0.5) == pytest.approx(N * K * DIM / 0.5, rel=1e-12)

    def test_throughput_zero_time(self):
        with pytest.raises(ZeroDivisionError):
            throughput(1000, 2, 3, 10, 0.0)
