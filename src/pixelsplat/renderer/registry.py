"""Name registry for filters and samplers, so configs can select them by name.

    @register("filter", "gaussian")
    class GaussianFilter(Filter): ...

    build("filter", "gaussian", radius_x=2.0, radius_y=2.0, alpha=2.0)
"""

from typing import Dict

REGISTRY: Dict[str, Dict[str, type]] = {"filter": {}, "sampler": {}}


def register(kind: str, name: str):
    if kind not in REGISTRY:
        raise ValueError(f"Unknown registry kind: {kind}. Use one of {sorted(REGISTRY)}")

    def deco(cls):
        REGISTRY[kind][name] = cls
        return cls
    return deco


def build(kind: str, name: str, **kwargs):
    try:
        cls = REGISTRY[kind][name]
    except KeyError:
        known = sorted(REGISTRY.get(kind, {}))
        raise ValueError(f"Unknown {kind} '{name}'. Registered: {known}") from None
    return cls(**kwargs)


def names(kind: str):
    return sorted(REGISTRY[kind])
