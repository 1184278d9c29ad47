"""Infrastructure layer for snapshot storage."""
from __future__ import annotations

import threading
from dataclasses import replace
from typing import Iterable, Protocol

from pydantic import BaseModel

from prodtrack.core.schema import (
    ClientContract,
    ClientPayment,
    DecisionRecord,
    DeliverySubmission,
    Expense,
    ProjectRecord,
    TeamMember,
    VideoUnit,
)
from prodtrack.domain import COLLECTIONS, AgencySnapshot

RECORD_TYPES: dict[str, type[BaseModel]] = {
    "projects": ProjectRecord,
    "deliveries": DeliverySubmission,
    "decisions": DecisionRecord,
    "clients": ClientContract,
    "team": TeamMember,
    "videos": VideoUnit,
    "payments": ClientPayment,
    "expenses": Expense,
}


def parse_records(collection: str, rows: Iterable[dict]) -> list[BaseModel]:
    """Validate raw rows for ``collection``; raises pydantic ``ValidationError``."""

    try:
        model = RECORD_TYPES[collection]
    except KeyError as exc:
        raise KeyError(f"unknown collection {collection!r}") from exc
    return [row if isinstance(row, model) else model(**row) for row in rows]


class SnapshotRepository(Protocol):
    """Storage contract: hands out consistent snapshots on demand."""

    def current(self) -> AgencySnapshot: ...

    def replace(self, records: dict[str, Iterable[dict]]) -> int: ...

    def append(self, collection: str, rows: Iterable[dict]) -> int: ...

    def version(self) -> int: ...

    def reset(self) -> None: ...


class InMemorySnapshotRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = AgencySnapshot()

    def current(self) -> AgencySnapshot:
        with self._lock:
            return self._snapshot

    def version(self) -> int:
        with self._lock:
            return self._snapshot.version

    def replace(self, records: dict[str, Iterable[dict]]) -> int:
        parsed = {name: parse_records(name, records.get(name, [])) for name in COLLECTIONS}
        with self._lock:
            self._snapshot = AgencySnapshot(version=self._snapshot.version + 1, **parsed)
            return self._snapshot.version

    def append(self, collection: str, rows: Iterable[dict]) -> int:
        parsed = parse_records(collection, rows)
        with self._lock:
            existing = list(getattr(self._snapshot, collection))
            self._snapshot = replace(
                self._snapshot,
                version=self._snapshot.version + 1,
                **{collection: existing + parsed},
            )
            return self._snapshot.version

    def reset(self) -> None:
        with self._lock:
            self._snapshot = AgencySnapshot()
