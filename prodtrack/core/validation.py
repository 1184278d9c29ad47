from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from prodtrack.domain import COLLECTIONS, AgencySnapshot

logger = logging.getLogger(__name__)


class SnapshotValidationError(Exception):
    """Raised when a snapshot is structurally unusable."""


@dataclass
class AnomalyLog:
    """Data-quality observations collected while computing a report.

    Nothing recorded here is fatal; the engine has already substituted a
    default.  Callers read ``counts`` for monitoring.
    """

    counts: Counter = field(default_factory=Counter)
    details: list[dict[str, object]] = field(default_factory=list)

    def record(self, kind: str, **context: object) -> None:
        self.counts[kind] += 1
        self.details.append({"kind": kind, **context})
        logger.warning("anomaly %s %s", kind, " ".join(f"{k}={v}" for k, v in context.items()))

    def merge(self, other: "AnomalyLog") -> None:
        self.counts.update(other.counts)
        self.details.extend(other.details)

    def as_dict(self) -> dict[str, object]:
        return {"counts": dict(self.counts), "details": list(self.details)}


def _duplicates(ids: Iterable[str | None]) -> list[str]:
    seen = Counter(value for value in ids if value is not None)
    return sorted(value for value, count in seen.items() if count > 1)


def validate_snapshot(snapshot: AgencySnapshot) -> None:
    for name in COLLECTIONS:
        records = getattr(snapshot, name)
        duplicated = _duplicates(getattr(record, "id", None) for record in records)
        if duplicated:
            raise SnapshotValidationError(f"duplicate {name} ids: {', '.join(duplicated)}")
