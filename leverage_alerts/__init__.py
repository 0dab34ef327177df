"""leverage_alerts package.

Convenience exports for commonly used classes/functions.
"""

__all__: list[str] = []


def __getattr__(name: str):
    if name in ("reconcile", "derive_metrics", "classify", "compose"):
        from .reconciler import reconcile
        from .deriver import derive_metrics
        from .classifier import classify
        from .composer import compose

        return {
            "reconcile": reconcile,
            "derive_metrics": derive_metrics,
            "classify": classify,
            "compose": compose,
        }[name]
    if name in ("AlertCategory", "DebugFlag", "PositionRecord"):
        from . import models

        return getattr(models, name)
    if name == "AlertCycle":
        from .cycle import AlertCycle

        return AlertCycle
    raise AttributeError(f"module 'leverage_alerts' has no attribute {name!r}")
