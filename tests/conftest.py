"""
Общие фикстуры для всех тестов.
"""

import numpy as np
import pytest


@pytest.fixture
def example_pair():
    """Пример из контракта: DIM=3, K=2, точки совпадают с центроидами."""
    points = np.array([0.0, 0.0, 0.0, 10.0, 10.0, 10.0])
    centroids = np.array([0.0, 0.0, 0.0, 10.0, 10.0, 10.0])
    return points, centroids


@pytest.fixture
def small_dataset():
    """Небольшой датасет (3D, 3 кластера) в плоских буферах."""
    rng = np.random.default_rng(42)
    centers = np.array([
        [0.0, 0.0, 0.0],
        [8.0, 8.0, 8.0],
        [-8.0, 8.0, -8.0],
    ])
    labels = np.repeat(np.arange(3), 40)
    X = centers[labels] + rng.standard_normal((120, 3))
    centroids = centers + 0.5
    return X.reshape(-1), centroids.reshape(-1), 120, 3


@pytest.fixture
def histogram_dataset():
    """Нормированные гистограммы по 5 бинам (для cumulative_difference)."""
    rng = np.random.default_rng(7)
    X = rng.dirichlet(np.ones(5), size=50)
    centroids = rng.dirichlet(np.ones(5), size=4)
    return X.reshape(-1), centroids.reshape(-1), 50, 4
