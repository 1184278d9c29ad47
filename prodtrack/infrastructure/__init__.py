"""Infrastructure layer exports."""

from .changes import ChangeCallback, ChangeChannel, LocalChangeChannel
from .snapshots import InMemorySnapshotRepository, SnapshotRepository, parse_records

__all__ = [
    "ChangeCallback",
    "ChangeChannel",
    "InMemorySnapshotRepository",
    "LocalChangeChannel",
    "SnapshotRepository",
    "parse_records",
]
