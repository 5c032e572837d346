from .base import KernelBackend, KernelConfig, StepResult, zero_accumulators
from .cpu_numpy import KernelsCPUNumpy
from .cpu_multiprocessing import KernelsCPUMultiprocessing, MultiprocessingConfig
from .distance import (
    Metric,
    cumulative_difference,
    first_minimum_index,
    get_distance_fn,
    squared_euclidean,
)
from .errors import (
    IndexOutOfRange,
    InvalidBuffer,
    InvalidChunkSize,
    InvalidClusterCount,
    InvalidDimension,
    KernelError,
)
from .gpu_cupy import GPUConfig, KernelsGPUCuPy, gpu_available

__all__ = [
    "KernelBackend",
    "KernelConfig",
    "StepResult",
    "zero_accumulators",
    "KernelsCPUNumpy",
    "KernelsCPUMultiprocessing",
    "MultiprocessingConfig",
    "KernelsGPUCuPy",
    "GPUConfig",
    "gpu_available",
    "Metric",
    "squared_euclidean",
    "cumulative_difference",
    "first_minimum_index",
    "get_distance_fn",
    "KernelError",
    "InvalidDimension",
    "InvalidClusterCount",
    "IndexOutOfRange",
    "InvalidChunkSize",
    "InvalidBuffer",
]
