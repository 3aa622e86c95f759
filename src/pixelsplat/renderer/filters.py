"""Reconstruction filter kernels.

A filter weighs a sample's contribution to a pixel by the offset (dx, dy) from
the pixel center to the sample, in pixels. Every kernel is separable and
supported on the box ``|dx| <= radius_x, |dy| <= radius_y``; outside it the
weight is exactly zero.

Kernels:
    - BoxFilter: constant 1 (default radius 0.5)
    - TriangleFilter: linear falloff to zero at the radius (default radius 2)
    - GaussianFilter: Gaussian minus its value at the radius, so the kernel
      reaches zero continuously at the support edge (default radius 2, alpha 2)
    - MitchellFilter: Mitchell-Netravali cubic with shape constants B, C
      (default radius 2, B = C = 1/3)
    - LanczosSincFilter: sinc windowed by a wider sinc with tau lobes
      (default radius 4, tau 3)

evaluate() accepts floats or numpy arrays (broadcast together) so the
renderers can weigh a whole splat footprint in one call. Filters hold only
their constructor parameters and precomputed constants; they are read-only
after construction and shared across worker threads without locking.
"""

import math
from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np

from .registry import register


def _check_radius(radius_x: float, radius_y: float) -> Tuple[float, float]:
    radius_x, radius_y = float(radius_x), float(radius_y)
    if not (math.isfinite(radius_x) and radius_x > 0.0):
        raise ValueError(f"radius_x must be a positive finite number, got {radius_x}")
    if not (math.isfinite(radius_y) and radius_y > 0.0):
        raise ValueError(f"radius_y must be a positive finite number, got {radius_y}")
    return radius_x, radius_y


def _as_result(weight, dx, dy):
    """Return a Python float for scalar input, an array otherwise."""
    if np.ndim(dx) == 0 and np.ndim(dy) == 0:
        return float(weight)
    return weight


class Filter(ABC):
    """Separable reconstruction filter with per-axis support radii."""

    def __init__(self, radius_x: float, radius_y: float):
        self.radius_x, self.radius_y = _check_radius(radius_x, radius_y)

    @property
    def radius(self) -> Tuple[float, float]:
        """Support half-extents (radius_x, radius_y) in pixels."""
        return (self.radius_x, self.radius_y)

    @abstractmethod
    def _evaluate_1d(self, d: np.ndarray, radius: float, axis: int) -> np.ndarray:
        """Kernel along one axis for absolute offsets ``0 <= d <= radius``."""

    def evaluate(self, dx, dy):
        """Weight for a sample at offset (dx, dy) from the pixel center.

        Parameters
        ----------
        dx, dy : float or np.ndarray
            Offsets in pixels; arrays are broadcast together

        Returns
        -------
        float or np.ndarray
            Weight, zero outside the support box
        """
        ax = np.abs(np.asarray(dx, dtype=np.float64))
        ay = np.abs(np.asarray(dy, dtype=np.float64))
        inside = (ax <= self.radius_x) & (ay <= self.radius_y)

        # Clamp outside values into the support so kernels never see them
        wx = self._evaluate_1d(np.minimum(ax, self.radius_x), self.radius_x, 0)
        wy = self._evaluate_1d(np.minimum(ay, self.radius_y), self.radius_y, 1)
        weight = np.where(inside, wx * wy, 0.0)
        return _as_result(weight, dx, dy)

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self._params() == other._params()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._params()))

    def _params(self) -> tuple:
        return (self.radius_x, self.radius_y)

    def __repr__(self) -> str:
        params = ', '.join(f"{p:g}" for p in self._params())
        return f"{type(self).__name__}({params})"


@register("filter", "box")
class BoxFilter(Filter):
    """Constant weight inside the support; cheapest and blockiest."""

    def __init__(self, radius_x: float = 0.5, radius_y: float = 0.5):
        super().__init__(radius_x, radius_y)

    @classmethod
    def with_defaults(cls) -> 'BoxFilter':
        return cls(0.5, 0.5)

    def _evaluate_1d(self, d, radius, axis):
        return np.ones_like(d)


@register("filter", "triangle")
class TriangleFilter(Filter):
    """Separable tent: ``max(0, 1 - |d|/r)`` per axis."""

    def __init__(self, radius_x: float = 2.0, radius_y: float = 2.0):
        super().__init__(radius_x, radius_y)

    @classmethod
    def with_defaults(cls) -> 'TriangleFilter':
        return cls(2.0, 2.0)

    def _evaluate_1d(self, d, radius, axis):
        return np.maximum(0.0, 1.0 - d / radius)


@register("filter", "gaussian")
class GaussianFilter(Filter):
    """Truncated Gaussian shifted to reach zero at the support edge.

    Per axis: ``max(0, exp(-alpha d²) - exp(-alpha r²))``. The shift removes the
    step the plain truncated Gaussian would have at ``|d| = r``; at the center
    the weight is ``1 - exp(-alpha r²)`` per axis.
    """

    def __init__(self, radius_x: float = 2.0, radius_y: float = 2.0, alpha: float = 2.0):
        super().__init__(radius_x, radius_y)
        alpha = float(alpha)
        if not (math.isfinite(alpha) and alpha > 0.0):
            raise ValueError(f"alpha must be a positive finite number, got {alpha}")
        self.alpha = alpha
        self.exp_x = math.exp(-alpha * self.radius_x * self.radius_x)
        self.exp_y = math.exp(-alpha * self.radius_y * self.radius_y)

    @classmethod
    def with_defaults(cls) -> 'GaussianFilter':
        return cls(2.0, 2.0, 2.0)

    def _evaluate_1d(self, d, radius, axis):
        edge = self.exp_x if axis == 0 else self.exp_y
        weight = np.maximum(0.0, np.exp(-self.alpha * d * d) - edge)
        # exp() may round differently for arrays and scalars; pin the edge
        return np.where(d >= radius, 0.0, weight)

    def _params(self) -> tuple:
        return (self.radius_x, self.radius_y, self.alpha)


@register("filter", "mitchell")
class MitchellFilter(Filter):
    """Mitchell-Netravali cubic, parameterized by B and C.

    The offset is normalized by the radius and scaled to ``x = 2|d/r|`` so the
    two cubic pieces cover ``x <= 1`` and ``1 < x <= 2``:

        p1 = [1 - B/3, 0, -3 + 2B + C, 2 - 1.5B - C]
        p2 = [4B/3 + 4C, -2B - 8C, B + 5C, -B/6 - C]

    (coefficients of 1, x, x², x³). B = C = 1/3 is the classic recommendation.
    The kernel has small negative lobes for most (B, C).
    """

    def __init__(
        self,
        radius_x: float = 2.0,
        radius_y: float = 2.0,
        b: float = 1.0 / 3.0,
        c: float = 1.0 / 3.0
    ):
        super().__init__(radius_x, radius_y)
        self.b, self.c = float(b), float(c)
        b, c = self.b, self.c
        self.p1 = (1.0 - b / 3.0, 0.0, -3.0 + 2.0 * b + c, 2.0 - 1.5 * b - c)
        self.p2 = (4.0 / 3.0 * b + 4.0 * c, -2.0 * b - 8.0 * c, b + 5.0 * c, -b / 6.0 - c)

    @classmethod
    def with_defaults(cls) -> 'MitchellFilter':
        return cls(2.0, 2.0, 1.0 / 3.0, 1.0 / 3.0)

    @staticmethod
    def _cubic(p, x):
        return p[0] + x * (p[1] + x * (p[2] + x * p[3]))

    def _evaluate_1d(self, d, radius, axis):
        x = 2.0 * d / radius
        return np.where(
            x <= 1.0,
            self._cubic(self.p1, x),
            np.where(x <= 2.0, self._cubic(self.p2, x), 0.0),
        )

    def _params(self) -> tuple:
        return (self.radius_x, self.radius_y, self.b, self.c)


@register("filter", "lanczos_sinc")
class LanczosSincFilter(Filter):
    """Sinc windowed by a Lanczos window of ``tau`` lobes.

    Per axis: ``sinc(d) * sinc(d / tau)`` with ``sinc(v) = sin(pi v) / (pi v)``.
    The removable singularity is pinned explicitly: ``sinc(v) = 1`` for
    ``|v| < 1e-5``, so the center weight is exactly 1 and never NaN.
    """

    def __init__(self, radius_x: float = 4.0, radius_y: float = 4.0, tau: float = 3.0):
        super().__init__(radius_x, radius_y)
        tau = float(tau)
        if not (math.isfinite(tau) and tau > 0.0):
            raise ValueError(f"tau must be a positive finite number, got {tau}")
        self.tau = tau

    @classmethod
    def with_defaults(cls) -> 'LanczosSincFilter':
        return cls(4.0, 4.0, 3.0)

    @staticmethod
    def sinc(v):
        v = np.abs(np.asarray(v, dtype=np.float64))
        small = v < 1e-5
        w = np.pi * np.where(small, 1.0, v)
        return np.where(small, 1.0, np.sin(w) / w)

    def _evaluate_1d(self, d, radius, axis):
        return self.sinc(d) * self.sinc(d / self.tau)

    def _params(self) -> tuple:
        return (self.radius_x, self.radius_y, self.tau)
