"""Domain layer definitions."""

from .snapshot import COLLECTIONS, AgencySnapshot

__all__ = [
    "COLLECTIONS",
    "AgencySnapshot",
]
