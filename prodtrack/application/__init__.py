"""Application services."""

from .engine import EngineService, get_engine_service, reset_engine_state

__all__ = [
    "EngineService",
    "get_engine_service",
    "reset_engine_state",
]
