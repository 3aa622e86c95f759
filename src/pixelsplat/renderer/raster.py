"""Accumulation raster: per-pixel (weighted_sum, total_weight) pairs.

A Raster covers a Rectangle (not necessarily anchored at the origin, so tile
rasters with halos use the same type) and stores, per pixel:

    weighted_sum : array of shape value_shape, raster dtype   (Σ w·v)
    total_weight : float64                                     (Σ w)

Values are anything numpy can convert to ``value_shape``: scalars for
value_shape == (), RGB triples for (3,), and so on. Zero is
``np.zeros(value_shape, dtype)``; scaled addition is numpy arithmetic. The
accumulator dtype is float64 by default, or any inexact numpy dtype (complex
values accumulate into a complex raster).

Thread safety:
    accumulate(), accumulate_many() and merge() hold the raster's lock, so two
    threads writing the same pixel never interleave a read-modify-write. The
    renderers avoid the lock on the hot path by giving each tile a private
    Raster and merging tiles on one thread once all of them are done.

finalize() is read-only and must only be called after accumulation is
complete; the raster does not guard against concurrent writers.
"""

import threading
from typing import Callable, Sequence, Tuple

import numpy as np

from .rectangle import Rectangle


class Raster:
    """Dense grid of weighted accumulators over a pixel rectangle.

    Parameters
    ----------
    rectangle : Rectangle
        Pixels covered by this raster
    value_shape : tuple of int
        Shape of one accumulated value, () for scalars
    dtype : numpy dtype
        Accumulator dtype for weighted sums, floating or complex (default float64)
    """

    def __init__(self, rectangle: Rectangle, value_shape: Sequence[int] = (), dtype=np.float64):
        self.rectangle = rectangle
        self.value_shape = tuple(int(s) for s in value_shape)
        if any(s <= 0 for s in self.value_shape):
            raise ValueError(f"value_shape entries must be positive, got {self.value_shape}")
        self.dtype = np.dtype(dtype)
        if self.dtype.kind not in "fc":
            raise TypeError(f"Raster dtype must be floating or complex, got {self.dtype}")

        self._sums = np.zeros(rectangle.shape + self.value_shape, dtype=self.dtype)
        self._weights = np.zeros(rectangle.shape, dtype=np.float64)
        self._lock = threading.Lock()

    @classmethod
    def with_size(
        cls,
        width: int,
        height: int,
        value_shape: Sequence[int] = (),
        dtype=np.float64
    ) -> 'Raster':
        """Raster anchored at the origin; dimensions must be positive."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        return cls(Rectangle.from_size(width, height), value_shape, dtype)

    @property
    def width(self) -> int:
        return self.rectangle.width

    @property
    def height(self) -> int:
        return self.rectangle.height

    def _coerce_values(self, values) -> np.ndarray:
        arr = np.asarray(values)
        if arr.dtype.kind not in "biufc":
            raise TypeError(f"Values must be numeric, got dtype {arr.dtype}")
        if not np.can_cast(arr.dtype, self.dtype, casting="same_kind"):
            raise TypeError(f"Cannot accumulate {arr.dtype} values into a {self.dtype} raster")
        return arr.astype(self.dtype, copy=False)

    def _coerce_value(self, value) -> np.ndarray:
        arr = self._coerce_values(value)
        if arr.shape != self.value_shape:
            raise ValueError(
                f"Value shape {arr.shape} != raster value_shape {self.value_shape}"
            )
        return arr

    def _local(self, x: int, y: int) -> Tuple[int, int]:
        if not self.rectangle.contains(x, y):
            raise IndexError(
                f"Pixel ({x}, {y}) outside raster "
                f"[{self.rectangle.left}, {self.rectangle.right}) x "
                f"[{self.rectangle.top}, {self.rectangle.bottom})"
            )
        return y - self.rectangle.top, x - self.rectangle.left

    def accumulate(self, pixel: Tuple[int, int], value, weight: float) -> None:
        """Add ``weight * value`` to the pixel's sum and ``weight`` to its weight.

        Raises
        ------
        IndexError
            If the pixel lies outside the raster
        ValueError
            If the value doesn't match value_shape
        TypeError
            If the value isn't numeric or doesn't fit the raster dtype
        """
        row, col = self._local(int(pixel[0]), int(pixel[1]))
        value = self._coerce_value(value)
        weight = float(weight)
        with self._lock:
            self._sums[row, col] += weight * value
            self._weights[row, col] += weight

    def accumulate_many(self, xs, ys, values, weights) -> None:
        """Vectorized accumulate() for N contributions.

        Parameters
        ----------
        xs, ys : array_like of int, shape (N,)
            Absolute pixel coordinates, all inside the raster
        values : array_like, shape (N,) + value_shape
            Values to add
        weights : array_like, shape (N,)
            Filter weights

        Notes
        -----
        Uses np.add.at (unbuffered), so repeated pixels in one call add up and
        contributions are applied in index order.
        """
        xs = np.asarray(xs, dtype=np.int64)
        ys = np.asarray(ys, dtype=np.int64)
        weights = np.asarray(weights, dtype=np.float64)
        values = self._coerce_values(values)

        n = weights.shape[0] if weights.ndim else 0
        if xs.shape != (n,) or ys.shape != (n,) or weights.shape != (n,):
            raise ValueError(
                f"xs, ys and weights must share shape (N,), got {xs.shape}, {ys.shape}, {weights.shape}"
            )
        if values.shape != (n,) + self.value_shape:
            raise ValueError(
                f"values shape {values.shape} != {(n,) + self.value_shape}"
            )
        if n == 0:
            return

        rect = self.rectangle
        inside = (xs >= rect.left) & (xs < rect.right) & (ys >= rect.top) & (ys < rect.bottom)
        if not inside.all():
            bad = int(np.argmin(inside))
            raise IndexError(f"Pixel ({xs[bad]}, {ys[bad]}) outside raster {rect}")

        rows = ys - rect.top
        cols = xs - rect.left
        scaled = values * weights.reshape((n,) + (1,) * len(self.value_shape))
        with self._lock:
            np.add.at(self._sums, (rows, cols), scaled)
            np.add.at(self._weights, (rows, cols), weights)

    def merge(self, other: 'Raster') -> None:
        """Add another raster's accumulators over the overlap of both rectangles.

        Used to fold tile rasters (tile + halo) into the image raster. Parts of
        ``other`` outside this raster are discarded.
        """
        if other.value_shape != self.value_shape:
            raise ValueError(
                f"Cannot merge value_shape {other.value_shape} into {self.value_shape}"
            )
        if not np.can_cast(other.dtype, self.dtype, casting="same_kind"):
            raise TypeError(f"Cannot merge a {other.dtype} raster into a {self.dtype} raster")
        overlap = self.rectangle.intersection(other.rectangle)
        if overlap is None:
            return

        dst = self._slices(overlap)
        src = other._slices(overlap)
        with self._lock:
            self._sums[dst] += other._sums[src]
            self._weights[dst] += other._weights[src]

    def _slices(self, rect: Rectangle) -> Tuple[slice, slice]:
        top, left = self.rectangle.top, self.rectangle.left
        return (
            slice(rect.top - top, rect.bottom - top),
            slice(rect.left - left, rect.right - left),
        )

    def weight(self, x: int, y: int) -> float:
        row, col = self._local(x, y)
        return float(self._weights[row, col])

    def weighted_sum(self, x: int, y: int) -> np.ndarray:
        row, col = self._local(x, y)
        return self._sums[row, col].copy()

    def total_weights(self) -> np.ndarray:
        """Copy of the weight grid, shape (height, width)."""
        return self._weights.copy()

    def weighted_sums(self) -> np.ndarray:
        """Copy of the weighted-sum grid, shape (height, width) + value_shape."""
        return self._sums.copy()

    def value_at(self, x: int, y: int) -> np.ndarray:
        """Finalized value of one pixel (zero when it received no weight)."""
        row, col = self._local(x, y)
        w = self._weights[row, col]
        if w == 0.0:
            return np.zeros(self.value_shape, dtype=self.dtype)
        return self._sums[row, col] / w

    def finalize(self) -> np.ndarray:
        """Normalized values, shape (height, width) + value_shape.

        Pixels with zero total weight finalize to zero instead of dividing by
        zero. Call only after every writer has finished.
        """
        out = np.zeros_like(self._sums)
        mask = self._weights != 0.0
        w = self._weights[mask].reshape((-1,) + (1,) * len(self.value_shape))
        out[mask] = self._sums[mask] / w
        return out

    def map(self, fn: Callable[[np.ndarray], object]) -> np.ndarray:
        """Apply ``fn`` to every finalized pixel value; returns a stacked array.

        Examples
        --------
        >>> to_u8 = lambda v: np.clip(np.round(v * 255), 0, 255).astype(np.uint8)
        >>> img = raster.map(to_u8)  # (H, W, 3) uint8 for RGB rasters
        """
        values = self.finalize()
        h, w = self.rectangle.shape
        mapped = [np.asarray(fn(values[r, c])) for r in range(h) for c in range(w)]
        if not mapped:
            return np.empty((h, w))
        return np.stack(mapped).reshape((h, w) + mapped[0].shape)

    def __repr__(self) -> str:
        return f"Raster({self.rectangle}, value_shape={self.value_shape}, dtype={self.dtype})"
