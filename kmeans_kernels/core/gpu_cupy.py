"""
CUDA/CuPy реализация ядер шага Ллойда.

Три raw-ядра повторяют модель исполнения «одна единица: один чанк точек»
и «одна единица: один кластер»:

- *_distances: единица обрабатывает точки [start, end) и пишет все K
  элементов их строк матрицы расстояний;
- minimum_index: единица выбирает argmin строк своего чанка;
- sum_by_group: блок = кластер; потоки блока накапливают частичные суммы
  в shared memory, после барьера поток 0 единственный пишет sums[c] / counts[c].

DIM и тип вещественных чисел задаются при компиляции (-DDIM, -DREAL),
локальные векторы признаков: массивы фиксированной длины DIM.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

try:  # CuPy опционален: можем работать без GPU
    import cupy as cp

    _GPU_OK = cp.cuda.runtime.getDeviceCount() > 0
except Exception:  # noqa: BLE001
    cp = None  # type: ignore
    _GPU_OK = False

import numpy as np

from kmeans_kernels.core.base import KernelBackend, KernelConfig
from kmeans_kernels.core.distance import Metric
from kmeans_kernels.metrics.timers import Timer


def gpu_available() -> bool:
    """Проверка доступности CuPy/CUDA."""
    return _GPU_OK


@dataclass(frozen=True)
class GPUConfig:
    """
    Параметры запуска на GPU.

    accumulate_threads: число потоков, совместно накапливающих один
    кластер (1: эталонное поведение: один поток сканирует все точки).
    """

    use_float32: bool = True
    threads_per_block: int = 256
    accumulate_threads: int = 1


_KERNEL_PRELUDE = r"""
#ifndef DIM
#define DIM 3
#endif
#ifndef REAL
#define REAL float
#endif
"""

_SQUARED_EUCLIDEAN_KERNEL = _KERNEL_PRELUDE + r"""
extern "C" __global__
void squared_euclidean_distances(REAL* __restrict__ distances,
                                 const REAL* __restrict__ points,
                                 const REAL* __restrict__ centroids,
                                 const int chunk_size, const int n, const int k,
                                 const int units) {
    int unit = blockDim.x * blockIdx.x + threadIdx.x;
    if (unit >= units) return;

    long long start = (long long)unit * chunk_size;
    if (start >= n) return;
    long long end = start + chunk_size < n ? start + chunk_size : n;

    for (long long idx = start; idx < end; ++idx) {
        REAL point[DIM];
        for (int f = 0; f < DIM; ++f) {
            point[f] = points[idx * DIM + f];
        }
        for (int c = 0; c < k; ++c) {
            const REAL* centroid = centroids + (size_t)c * DIM;
            REAL sum = 0;
            for (int f = 0; f < DIM; ++f) {
                REAL diff = point[f] - centroid[f];
                sum += diff * diff;
            }
            distances[idx * k + c] = sum;
        }
    }
}
"""

_CUMULATIVE_DIFFERENCE_KERNEL = _KERNEL_PRELUDE + r"""
__device__ REAL cumulative_difference(const REAL* point, const REAL* centroid) {
    REAL dist[DIM];
    for (int f = 0; f < DIM; ++f) {
        dist[f] = point[f] - centroid[f];
    }
    for (int f = 1; f < DIM; ++f) {
        dist[f] += dist[f - 1];
    }
    REAL sum = 0;
    for (int f = 0; f < DIM; ++f) {
        sum += fabs(dist[f]);
    }
    return sum;
}

extern "C" __global__
void cumulative_difference_distances(REAL* __restrict__ distances,
                                     const REAL* __restrict__ points,
                                     const REAL* __restrict__ centroids,
                                     const int chunk_size, const int n, const int k,
                                     const int units) {
    int unit = blockDim.x * blockIdx.x + threadIdx.x;
    if (unit >= units) return;

    long long start = (long long)unit * chunk_size;
    if (start >= n) return;
    long long end = start + chunk_size < n ? start + chunk_size : n;

    for (long long idx = start; idx < end; ++idx) {
        REAL point[DIM];
        for (int f = 0; f < DIM; ++f) {
            point[f] = points[idx * DIM + f];
        }
        for (int c = 0; c < k; ++c) {
            distances[idx * k + c] = cumulative_difference(point, centroids + (size_t)c * DIM);
        }
    }
}
"""

_MINIMUM_INDEX_KERNEL = _KERNEL_PRELUDE + r"""
extern "C" __global__
void minimum_index(const REAL* __restrict__ distances,
                   int* __restrict__ outputs,
                   const int chunk_size, const int n, const int k,
                   const int units) {
    int unit = blockDim.x * blockIdx.x + threadIdx.x;
    if (unit >= units) return;

    long long start = (long long)unit * chunk_size;
    if (start >= n) return;
    long long end = start + chunk_size < n ? start + chunk_size : n;

    for (long long idx = start; idx < end; ++idx) {
        const REAL* row = distances + idx * k;
        int lowest = 0;
        // Строгое сравнение: при равенстве остаётся меньший индекс
        for (int c = 1; c < k; ++c) {
            if (row[lowest] > row[c]) {
                lowest = c;
            }
        }
        outputs[idx] = lowest;
    }
}
"""

# Блок = кластер. Каждый поток блока копит свою часть в регистрах,
# кладёт её в shared memory, после барьера поток 0 сводит и пишет.
_SUM_BY_GROUP_KERNEL = _KERNEL_PRELUDE + r"""
extern "C" __global__
void sum_by_group(const REAL* __restrict__ points,
                  const int* __restrict__ assignments,
                  REAL* __restrict__ sums,
                  int* __restrict__ counts,
                  const int n) {
    extern __shared__ unsigned char smem[];
    REAL* local_sums = (REAL*)smem;
    int* local_counts = (int*)(local_sums + blockDim.x * DIM);

    int cluster = blockIdx.x;
    int tid = threadIdx.x;

    REAL acc[DIM];
    for (int f = 0; f < DIM; ++f) {
        acc[f] = 0;
    }
    int count = 0;

    for (long long idx = tid; idx < n; idx += blockDim.x) {
        if (assignments[idx] == cluster) {
            const REAL* features = points + idx * DIM;
            for (int f = 0; f < DIM; ++f) {
                acc[f] += features[f];
            }
            count++;
        }
    }

    for (int f = 0; f < DIM; ++f) {
        local_sums[tid * DIM + f] = acc[f];
    }
    local_counts[tid] = count;

    __syncthreads();

    if (tid == 0) {
        for (int t = 1; t < blockDim.x; ++t) {
            for (int f = 0; f < DIM; ++f) {
                acc[f] += local_sums[t * DIM + f];
            }
            count += local_counts[t];
        }
        for (int f = 0; f < DIM; ++f) {
            sums[(size_t)cluster * DIM + f] += acc[f];
        }
        counts[cluster] += count;
    }
}
"""

_DISTANCE_KERNELS: Dict[Metric, tuple] = {
    Metric.SQUARED_EUCLIDEAN: (_SQUARED_EUCLIDEAN_KERNEL, "squared_euclidean_distances"),
    Metric.CUMULATIVE_DIFFERENCE: (_CUMULATIVE_DIFFERENCE_KERNEL, "cumulative_difference_distances"),
}


class KernelsGPUCuPy(KernelBackend):
    """
    Ядра на GPU через cupy.RawKernel.

    Входы и выходы: массивы NumPy на хосте; передачи H2D/D2H идут через
    собственный CUDA stream, перед возвратом результата stream
    синхронизируется (граница запуска: результат каждого ядра полностью
    материализован до следующего). Время передач копится в t_h2d / t_d2h.
    """

    def __init__(
        self,
        config: KernelConfig = KernelConfig(),
        gpu: GPUConfig = GPUConfig(),
        logger: Any | None = None,
    ) -> None:
        if not _GPU_OK:
            raise RuntimeError("CuPy/CUDA недоступен, GPU бэкенд выключен")
        super().__init__(config=config, logger=logger)
        self.gpu = gpu
        self._real = cp.float32 if gpu.use_float32 else cp.float64

        options = (
            f"-DDIM={self.dim}",
            "-DREAL=float" if gpu.use_float32 else "-DREAL=double",
            # Без FMA-свёртки: суммы признаков в том же порядке и округлении, что на CPU
            "--fmad=false",
        )
        source, name = _DISTANCE_KERNELS[self.metric]
        self._distances_kernel = cp.RawKernel(source, name, options=options)
        self._min_index_kernel = cp.RawKernel(_MINIMUM_INDEX_KERNEL, "minimum_index", options=options)
        self._sum_kernel = cp.RawKernel(_SUM_BY_GROUP_KERNEL, "sum_by_group", options=options)

        self.t_h2d: float = 0.0  # Время передачи Host->Device
        self.t_d2h: float = 0.0  # Время передачи Device->Host
        self._stream: "cp.cuda.Stream" = cp.cuda.Stream(non_blocking=True)

    def _to_gpu(self, arr: np.ndarray, dtype: Any) -> "cp.ndarray":
        with Timer() as t:
            with self._stream:
                out = cp.asarray(arr, dtype=dtype, order="C")
        self.t_h2d += t.elapsed
        return out

    def _to_host(self, arr: "cp.ndarray", dtype: Any) -> np.ndarray:
        with Timer() as t:
            self._stream.synchronize()
            out = cp.asnumpy(arr).astype(dtype, copy=False)
        self.t_d2h += t.elapsed
        return out

    def _grid(self, units: int) -> tuple:
        threads = int(self.gpu.threads_per_block)
        blocks = max(1, (units + threads - 1) // threads)
        return (blocks,), (threads,)

    def _compute_distances(self, X, centroids, n, k, chunk_size, units):
        if n == 0:
            return np.empty((n, k), dtype=self.dtype)
        X_gpu = self._to_gpu(X, self._real)
        C_gpu = self._to_gpu(centroids, self._real)
        grid, block = self._grid(units)
        with self._stream:
            distances = cp.empty((n, k), dtype=self._real)
            self._distances_kernel(
                grid,
                block,
                (distances, X_gpu, C_gpu, np.int32(chunk_size), np.int32(n), np.int32(k), np.int32(units)),
            )
        return self._to_host(distances, self.dtype)

    def _assign(self, distances, n, k, chunk_size, units):
        if n == 0:
            return np.empty(0, dtype=np.int32)
        D_gpu = self._to_gpu(distances, self._real)
        grid, block = self._grid(units)
        with self._stream:
            labels = cp.empty(n, dtype=cp.int32)
            self._min_index_kernel(
                grid,
                block,
                (D_gpu, labels, np.int32(chunk_size), np.int32(n), np.int32(k), np.int32(units)),
            )
        return self._to_host(labels, np.int32)

    def _accumulate(self, X, labels, n, k, sums, counts):
        if n == 0:
            return
        X_gpu = self._to_gpu(X, self._real)
        labels_gpu = self._to_gpu(labels, cp.int32)
        threads = max(1, int(self.gpu.accumulate_threads))
        itemsize = cp.dtype(self._real).itemsize
        shared_mem = threads * self.dim * itemsize + threads * cp.dtype(cp.int32).itemsize
        with self._stream:
            # Частичный результат этого вызова; в буферы вызывающего кода
            # он добавляется на хосте, без потери их точности
            sums_gpu = cp.zeros((k, self.dim), dtype=self._real)
            counts_gpu = cp.zeros(k, dtype=cp.int32)
            self._sum_kernel(
                (k,),
                (threads,),
                (X_gpu, labels_gpu, sums_gpu, counts_gpu, np.int32(n)),
                shared_mem=shared_mem,
            )
        sums += self._to_host(sums_gpu, sums.dtype)
        counts += self._to_host(counts_gpu, counts.dtype)
