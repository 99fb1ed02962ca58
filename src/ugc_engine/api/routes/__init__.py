"""API route modules."""

from ugc_engine.api.routes import health, storage, tasks

__all__ = ["health", "storage", "tasks"]
