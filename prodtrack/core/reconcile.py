"""Group delivery submissions by item label and pick the current one.

The current delivery for a label is the latest by ``submitted_at``.  Equal
timestamps are resolved by input order, the record supplied last wins, so
the result is stable for a given snapshot.  Deliveries without a label, or
whose label names no item of the project, are orphans: they stay in the
history but never influence item status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Sequence

from prodtrack.core.labels import extract_label, normalize
from prodtrack.core.periods import as_utc
from prodtrack.core.schema import DeliverySubmission, OrphanDelivery, WorkItemSpec
from prodtrack.core.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Reconciliation:
    current: dict[str, DeliverySubmission] = field(default_factory=dict)
    batches: dict[str, list[DeliverySubmission]] = field(default_factory=dict)
    history: dict[str, list[DeliverySubmission]] = field(default_factory=dict)
    orphans: list[OrphanDelivery] = field(default_factory=list)


def resolve_label(delivery: DeliverySubmission) -> str | None:
    if delivery.label:
        return normalize(delivery.label) or None
    return extract_label(delivery.notes)


def _orphan(delivery: DeliverySubmission, label: str | None) -> OrphanDelivery:
    return OrphanDelivery(
        delivery_id=delivery.id,
        project_id=delivery.project_id,
        label=label,
        reason="unlabelled" if label is None else "unknown_label",
        submitted_at=delivery.submitted_at,
    )


def reconcile_deliveries(
    items: Sequence[WorkItemSpec],
    deliveries: Iterable[DeliverySubmission],
    settings: EngineSettings | None = None,
) -> Reconciliation:
    settings = settings or get_settings()
    known_labels = {item.label for item in items}

    grouped: dict[str, list[tuple[int, DeliverySubmission]]] = {}
    result = Reconciliation()
    for order, delivery in enumerate(deliveries):
        label = resolve_label(delivery)
        if label is None or label not in known_labels:
            result.orphans.append(_orphan(delivery, label))
            continue
        grouped.setdefault(label, []).append((order, delivery))

    window = timedelta(seconds=settings.delivery_batch_seconds)
    for label, entries in grouped.items():
        entries.sort(key=lambda entry: (as_utc(entry[1].submitted_at), entry[0]))
        ordered = [delivery for _, delivery in entries]
        current = ordered[-1]
        result.history[label] = ordered
        result.current[label] = current
        if window:
            latest = as_utc(current.submitted_at)
            batch = [d for d in ordered if latest - as_utc(d.submitted_at) <= window]
            result.batches[label] = list(reversed(batch))
        else:
            result.batches[label] = [current]

    if result.orphans:
        logger.info("%d orphan deliveries outside the item list", len(result.orphans))
    return result
