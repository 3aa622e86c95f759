"""Lightweight wall-clock profiling for renders.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink
    - TimerAccumulator: Aggregate repeated measurements (e.g. per tile)

Used to measure:
    - Whole render (partition, parallel phase, merge)
    - Per-tile sampling + evaluation + splatting time

No heavy dependencies (no line_profiler, no cProfile overhead during renders).
"""

import time
from contextlib import contextmanager
from typing import Callable, Optional


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds)
        If None, prints to stdout

    Examples
    --------
    >>> with timer("render"):
    ...     raster = renderer.render(64, 64, sampler, flt, fn, 16)
    render: 0.123 s

    >>> with timer("render", sink=lambda n, s: logger.info(f"{n}: {s:.3f} s")):
    ...     raster = renderer.render(64, 64, sampler, flt, fn, 16)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            print(f"{name}: {elapsed:.3f} s")


class TimerAccumulator:
    """Accumulate multiple timing measurements for averaging.

    Not synchronized: feed it from one thread (the renderers add tile
    durations during the single-threaded merge phase).

    Examples
    --------
    >>> tiles = TimerAccumulator("tile")
    >>> for result in results:
    ...     tiles.add(result.elapsed)
    >>> print(f"Mean: {tiles.mean():.4f} s")
    """

    def __init__(self, name: str):
        self.name = name
        self.total_time = 0.0
        self.max_time = 0.0
        self.count = 0

    @contextmanager
    def measure(self):
        """Context manager to measure and accumulate time."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(time.perf_counter() - start)

    def add(self, elapsed: float) -> None:
        """Record one externally measured duration (seconds)."""
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        self.count += 1

    def mean(self) -> float:
        """Mean time per measurement in seconds, or 0.0 if none."""
        return self.total_time / self.count if self.count > 0 else 0.0

    def reset(self) -> None:
        self.total_time = 0.0
        self.max_time = 0.0
        self.count = 0

    def __repr__(self) -> str:
        return f"TimerAccumulator({self.name}, mean={self.mean():.4f}s, count={self.count})"
