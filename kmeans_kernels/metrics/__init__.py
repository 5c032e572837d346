from .timers import StepTimings, Timer
from .metrics import speedup, efficiency, throughput

__all__ = [
    "Timer",
    "StepTimings",
    "speedup",
    "efficiency",
    "throughput"
]
