"""Client-supplied per-sample evaluation.

The engine treats the render function as an opaque, pure, thread-safe map from
an image-plane position to a value. Two shapes are accepted:

    - an object with ``evaluate(x, y) -> value`` (subclass RenderFunction or
      duck-type it)
    - a plain callable ``f(x, y) -> value``

It is invoked concurrently from worker threads in no particular order. The
engine never retries an evaluation; an exception aborts the whole render.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable


class RenderFunction(ABC):
    """Evaluates the client's value at one sample position."""

    @abstractmethod
    def evaluate(self, x: float, y: float) -> Any:
        """Value at image-plane position (x, y)."""


class CallableRenderFunction(RenderFunction):
    """Adapts a plain ``f(x, y)`` callable to the RenderFunction interface."""

    def __init__(self, fn: Callable[[float, float], Any]):
        self.fn = fn

    def evaluate(self, x: float, y: float) -> Any:
        return self.fn(x, y)

    def __repr__(self) -> str:
        name = getattr(self.fn, '__qualname__', repr(self.fn))
        return f"CallableRenderFunction({name})"


def as_render_function(render_fn) -> RenderFunction:
    """Normalize a RenderFunction-like object or callable.

    Raises
    ------
    TypeError
        If ``render_fn`` has no evaluate() method and is not callable
    """
    if isinstance(render_fn, RenderFunction):
        return render_fn
    evaluate = getattr(render_fn, 'evaluate', None)
    if callable(evaluate):
        return CallableRenderFunction(evaluate)
    if callable(render_fn):
        return CallableRenderFunction(render_fn)
    raise TypeError(
        f"render_fn must be callable or provide evaluate(x, y), got {type(render_fn).__name__}"
    )
