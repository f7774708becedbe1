from .metrics import metrics_router, registry

__all__ = ["metrics_router", "registry"]
