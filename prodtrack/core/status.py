"""Per-item lifecycle status and project completion summary.

Status is recomputed from records on every call, never stored:

* no current delivery                      -> ``pending``
* current delivery without decision        -> ``delivered``
* latest decision on it is ``approved``    -> ``approved``
* latest decision is ``revision_requested`` -> ``revision_requested``

Decisions attach to a delivery version, so a newer delivery for an approved
item puts it back to ``delivered``.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Sequence

from prodtrack.core.periods import as_utc
from prodtrack.core.pricing import item_price, specification_price
from prodtrack.core.reconcile import Reconciliation, reconcile_deliveries
from prodtrack.core.schema import (
    DecisionRecord,
    DeliverySubmission,
    ItemState,
    ItemStatus,
    ProjectRecord,
    ProjectReport,
    ProjectSummary,
    WorkItemSpec,
)
from prodtrack.core.settings import EngineSettings, get_settings
from prodtrack.core.spec_parser import parse_specification
from prodtrack.core.validation import AnomalyLog

logger = logging.getLogger(__name__)

STATUS_ORDER: tuple[ItemStatus, ...] = ("pending", "delivered", "revision_requested", "approved")


def latest_decision(
    delivery_ids: Iterable[str],
    decisions: Sequence[DecisionRecord],
) -> DecisionRecord | None:
    """Most recent decision on any of ``delivery_ids``; later input wins ties."""

    wanted = set(delivery_ids)
    best: tuple[object, int] | None = None
    chosen: DecisionRecord | None = None
    for order, decision in enumerate(decisions):
        if decision.delivery_id not in wanted:
            continue
        key = (as_utc(decision.reviewed_at), order)
        if best is None or key > best:
            best = key
            chosen = decision
    return chosen


def _status_for(decision: DecisionRecord | None) -> ItemStatus:
    if decision is None:
        return "delivered"
    if decision.decision == "approved":
        return "approved"
    return "revision_requested"


def derive_item_states(
    items: Sequence[WorkItemSpec],
    reconciliation: Reconciliation,
    decisions: Sequence[DecisionRecord],
    settings: EngineSettings | None = None,
    default_designer_id: str | None = None,
) -> list[ItemState]:
    settings = settings or get_settings()
    states: list[ItemState] = []
    for item in items:
        price = item_price(item, settings)
        current = reconciliation.current.get(item.label)
        if current is None:
            states.append(ItemState(item=item, status="pending", price=price))
            continue

        batch = reconciliation.batches.get(item.label) or [current]
        decision = latest_decision((delivery.id for delivery in batch), decisions)
        history = reconciliation.history.get(item.label, [])
        states.append(
            ItemState(
                item=item,
                status=_status_for(decision),
                price=price,
                current_delivery_id=current.id,
                batch_delivery_ids=[delivery.id for delivery in batch],
                decision_id=decision.id if decision else None,
                reviewed_at=decision.reviewed_at if decision else None,
                designer_id=current.designer_id or default_designer_id,
                superseded_count=len(history) - len(batch),
            )
        )
    return states


def summarise(states: Sequence[ItemState], recorded_completed: int | None = None) -> ProjectSummary:
    counts = Counter(state.status for state in states)
    total = len(states)
    completed = counts.get("approved", 0)
    percent = round(completed / total * 100) if total else 0
    drift = recorded_completed is not None and recorded_completed != completed
    return ProjectSummary(
        total_items=total,
        completed_items=completed,
        percent_complete=percent,
        counts_by_status={status: counts.get(status, 0) for status in STATUS_ORDER},
        recorded_completed=recorded_completed,
        counter_drift=drift,
    )


def build_project_report(
    project: ProjectRecord,
    deliveries: Iterable[DeliverySubmission],
    decisions: Sequence[DecisionRecord],
    settings: EngineSettings | None = None,
    anomalies: AnomalyLog | None = None,
) -> ProjectReport:
    settings = settings or get_settings()
    parsed = parse_specification(project.description, settings)
    reconciliation = reconcile_deliveries(parsed.items, deliveries, settings)
    states = derive_item_states(
        parsed.items,
        reconciliation,
        decisions,
        settings,
        default_designer_id=project.designer_id,
    )
    summary = summarise(states, project.recorded_completed)

    if anomalies is not None:
        for segment in parsed.rejected_segments:
            anomalies.record("rejected_segment", project_id=project.id, segment=segment)
        for orphan in reconciliation.orphans:
            anomalies.record(
                f"orphan_{orphan.reason}",
                project_id=project.id,
                delivery_id=orphan.delivery_id,
                label=orphan.label,
            )
        if summary.counter_drift:
            anomalies.record(
                "completion_counter_drift",
                project_id=project.id,
                recorded=summary.recorded_completed,
                derived=summary.completed_items,
            )
        if project.description and not parsed.items:
            anomalies.record("empty_specification", project_id=project.id)

    return ProjectReport(
        project_id=project.id,
        client_id=project.client_id,
        title=project.title,
        items=states,
        summary=summary,
        total_price=specification_price(parsed.items, settings),
        orphans=reconciliation.orphans,
        free_text=parsed.free_text,
        rejected_segments=parsed.rejected_segments,
    )
