# main.py
"""
Бенчмарк шага Ллойда на синтетических данных.

Хост-сторона здесь: начальные центроиды, деление sums / counts между
шагами и обнуление аккумуляторов в начале каждой эпохи. Ядра только
считают расстояния, назначения и суммы.

Пример:
    python -m kmeans_kernels.main --backend cpu_mp --n 200000 --k 8 --steps 5 --compare
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np

from kmeans_kernels.core.base import KernelBackend, KernelConfig, zero_accumulators
from kmeans_kernels.core.cpu_multiprocessing import (
    KernelsCPUMultiprocessing,
    MultiprocessingConfig,
)
from kmeans_kernels.core.cpu_numpy import KernelsCPUNumpy
from kmeans_kernels.core.distance import Metric
from kmeans_kernels.metrics.metrics import efficiency, speedup, throughput
from kmeans_kernels.metrics.timers import StepTimings
from kmeans_kernels.utils.logging import format_shape_prefix, setup_logger

BACKENDS = ("cpu_numpy", "cpu_mp", "gpu")


def make_dataset(
    n: int, k: int, dim: int, metric: Metric, seed: int = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Синтетический датасет и начальные центроиды (K случайных точек).

    Для cumulative_difference точки: нормированные гистограммы
    (строки распределения Дирихле), иначе: гауссовы кластеры.
    """
    rng = np.random.default_rng(seed)
    if metric is Metric.CUMULATIVE_DIFFERENCE:
        X = rng.dirichlet(np.ones(dim), size=n)
    else:
        centers = rng.uniform(-10.0, 10.0, size=(k, dim))
        labels = rng.integers(0, k, size=n)
        X = centers[labels] + rng.standard_normal((n, dim))
    init_idx = rng.choice(n, size=k, replace=False)
    return X, X[init_idx].copy()


def make_backend(
    name: str, config: KernelConfig, processes: int, logger: Any | None = None
) -> KernelBackend:
    if name == "cpu_numpy":
        return KernelsCPUNumpy(config=config, logger=logger)
    if name == "cpu_mp":
        return KernelsCPUMultiprocessing(
            config=config,
            mp=MultiprocessingConfig(n_processes=processes),
            logger=logger,
        )
    if name == "gpu":
        from kmeans_kernels.core.gpu_cupy import KernelsGPUCuPy

        return KernelsGPUCuPy(config=config, logger=logger)
    raise ValueError(f"Unknown backend '{name}', expected one of {BACKENDS}")


def run_steps(
    backend: KernelBackend, X: np.ndarray, centroids: np.ndarray, steps: int
) -> Tuple[np.ndarray, StepTimings]:
    """Несколько шагов Ллойда; пустые кластеры сохраняют прежние координаты."""
    n, k = X.shape[0], centroids.shape[0]
    centroids = centroids.copy()
    total = StepTimings()
    for _ in range(steps):
        # Новая эпоха накопления: буферы обнуляются на каждом шаге
        sums, counts = zero_accumulators(k, backend.dim, backend.dtype)
        result = backend.lloyd_step(X, centroids, n, k, sums=sums, counts=counts)
        total.merge(result.timings)

        sums_2d = sums.reshape(k, backend.dim)
        non_empty = counts > 0
        centroids[non_empty] = sums_2d[non_empty] / counts[non_empty, None]
    return centroids, total


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark of the Lloyd step kernels")
    parser.add_argument("--backend", choices=BACKENDS, default="cpu_numpy")
    parser.add_argument("--n", type=int, default=100_000, help="Количество точек")
    parser.add_argument("--k", type=int, default=8, help="Количество кластеров")
    parser.add_argument("--dim", type=int, default=3, help="Число признаков (DIM)")
    parser.add_argument(
        "--metric",
        choices=[m.value for m in Metric],
        default=Metric.SQUARED_EUCLIDEAN.value,
    )
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--processes", type=int, default=4, help="Процессы для cpu_mp")
    parser.add_argument("--steps", type=int, default=10)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Прогнать cpu_numpy на тех же данных и посчитать ускорение.",
    )
    parser.add_argument("--output", type=Path, default=None, help="JSON с итогами")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logger = setup_logger(logging.DEBUG if args.verbose else logging.INFO)
    metric = Metric(args.metric)
    config = KernelConfig(dim=args.dim, metric=metric, chunk_size=args.chunk_size)
    prefix = format_shape_prefix(args.n, args.k, args.dim, metric.value)

    X, init = make_dataset(args.n, args.k, args.dim, metric, seed=args.seed)
    logger.info(f"{prefix} Backend {args.backend}, {args.steps} steps")

    backend = make_backend(
        args.backend,
        config,
        args.processes,
        logger=logger if args.verbose else None,
    )
    try:
        centroids, timings = run_steps(backend, X, init, args.steps)
    finally:
        if isinstance(backend, KernelsCPUMultiprocessing):
            backend.close()

    summary: Dict[str, Any] = {
        "backend": args.backend,
        "N": args.n,
        "K": args.k,
        "DIM": args.dim,
        "metric": metric.value,
        "steps": args.steps,
        "phases": dict(timings.phases),
        "total": timings.total,
        "throughput": throughput(args.n, args.k, args.dim, args.steps, timings.total),
    }
    logger.info(
        f"{prefix} T_total={timings.total:.6f}s "
        f"throughput={summary['throughput']:.3e} ops/s"
    )

    if args.compare and args.backend != "cpu_numpy":
        serial_centroids, serial_timings = run_steps(
            KernelsCPUNumpy(config=config), X, init, args.steps
        )
        s = speedup(serial_timings.total, timings.total)
        summary["speedup"] = s
        summary["max_centroid_diff"] = float(np.max(np.abs(serial_centroids - centroids)))
        if args.backend == "cpu_mp":
            summary["efficiency"] = efficiency(s, backend.n_processes)
        logger.info(
            f"{prefix} speedup vs cpu_numpy = {s:.2f}x "
            f"(max centroid diff {summary['max_centroid_diff']:.2e})"
        )

    if args.output is not None:
        args.output.write_text(json.dumps(summary, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Summary saved to {args.output}")


if __name__ == "__main__":
    main()
