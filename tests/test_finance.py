import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prodtrack.core.finance import allocate_evenly, build_finance_report
from prodtrack.core.periods import BillingWindow
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
from prodtrack.core.settings import EngineSettings
from prodtrack.core.validation import AnomalyLog
from prodtrack.domain import AgencySnapshot

PERIOD = "2025-03"


def _at(day, hour=10):
    return datetime(2025, 3, day, hour, 0, tzinfo=timezone.utc)


def _client(client_id="c-1", **extra):
    data = {"id": client_id, "company_name": f"Company {client_id}", "total_contract": Decimal("1000")}
    data.update(extra)
    return ClientContract(**data)


def _scenario_snapshot(**extra):
    data = dict(
        version=1,
        clients=[_client()],
        team=[TeamMember(id="designer-1", full_name="Dana", role="designer")],
        projects=[ProjectRecord(id="p-1", client_id="c-1", description="[1x Post + 1x Miniature]")],
        deliveries=[
            DeliverySubmission(id="d-post", project_id="p-1", notes="[Post 1]", submitted_at=_at(3), designer_id="designer-1"),
            DeliverySubmission(id="d-mini", project_id="p-1", notes="[Miniature 1]", submitted_at=_at(4), designer_id="designer-1"),
        ],
        decisions=[
            DecisionRecord(delivery_id="d-post", decision="approved", reviewed_at=_at(5)),
            DecisionRecord(delivery_id="d-mini", decision="revision_requested", reviewed_at=_at(6)),
        ],
    )
    data.update(extra)
    return AgencySnapshot(**data)


def test_allocate_evenly_sums_to_amount():
    shares = allocate_evenly(Decimal("1000"), ["a", "b", "c"])
    assert shares == {"a": Decimal("334"), "b": Decimal("333"), "c": Decimal("333")}
    assert sum(shares.values()) == Decimal("1000")


@pytest.mark.parametrize("amount, count", [(Decimal("600"), 4), (Decimal("1001"), 7), (Decimal("5"), 9)])
def test_allocation_stays_within_rounding(amount, count):
    keys = [f"k{i}" for i in range(count)]
    shares = allocate_evenly(amount, keys)
    assert abs(sum(shares.values()) - amount) <= count - 1
    assert max(shares.values()) - min(shares.values()) <= 1


def test_allocation_keeps_sub_unit_remainder_on_first_share():
    shares = allocate_evenly(Decimal("250.50"), ["a", "b", "c"])
    assert shares == {"a": Decimal("84.50"), "b": Decimal("83"), "c": Decimal("83")}
    assert sum(shares.values()) == Decimal("250.50")


def test_allocation_with_no_clients_is_empty():
    assert allocate_evenly(Decimal("900"), []) == {}
    assert allocate_evenly(Decimal("0"), ["a"]) == {"a": Decimal("0")}


def test_design_cost_counts_only_approved_items():
    report = build_finance_report(_scenario_snapshot(), PERIOD, settings=EngineSettings())
    (client,) = report.clients
    costs = client.cost_breakdown
    assert costs.design_cost == Decimal("40")
    assert costs.design_count == 1
    assert costs.design_types.posts == 1
    assert costs.design_types.miniatures == 0
    assert costs.effective_cost == Decimal("40")
    assert costs.net_profit == Decimal("960")
    assert costs.margin == Decimal("0.96")
    assert costs.margin_percent == 96


def test_approval_outside_window_is_excluded():
    report = build_finance_report(_scenario_snapshot(), "2025-04", settings=EngineSettings())
    assert report.clients[0].cost_breakdown.design_cost == Decimal("0")


def test_effective_cost_uses_expected_when_higher():
    snapshot = AgencySnapshot(
        version=1,
        clients=[_client(total_contract=Decimal("300"), videos_per_month=1, design_posts_per_month=1, editor_id="editor-1")],
        team=[TeamMember(id="editor-1", full_name="Eli", role="editor", rate=Decimal("100"))],
        videos=[VideoUnit(id="v-1", client_id="c-1", operator_id="editor-1", completed_at=_at(12))],
    )
    report = build_finance_report(snapshot, PERIOD, settings=EngineSettings(unit_price=Decimal("50")))
    costs = report.clients[0].cost_breakdown
    assert costs.actual_cost == Decimal("100")
    assert costs.expected_cost == Decimal("150")
    assert costs.effective_cost == Decimal("150")
    assert costs.net_profit == Decimal("150")
    assert costs.margin == Decimal("0.5")


def test_thumbnails_follow_video_quota():
    snapshot = AgencySnapshot(
        version=1,
        clients=[_client(videos_per_month=2, has_thumbnail_design=True)],
    )
    costs = build_finance_report(snapshot, PERIOD, settings=EngineSettings()).clients[0].cost_breakdown
    assert costs.designs_expected.thumbnails == 2
    assert costs.expected_cost == Decimal("2") * Decimal("100") + Decimal("2") * Decimal("40")


def test_zero_contract_value_gives_zero_margin():
    anomalies = AnomalyLog()
    snapshot = _scenario_snapshot(clients=[_client(total_contract=Decimal("0"))])
    report = build_finance_report(snapshot, PERIOD, settings=EngineSettings(), anomalies=anomalies)
    costs = report.clients[0].cost_breakdown
    assert costs.margin == Decimal("0")
    assert costs.margin_percent == 0
    assert costs.net_profit == Decimal("-40")
    assert anomalies.counts["zero_contract_value"] == 1


def test_copywriter_retainer_split_across_current_clients():
    snapshot = AgencySnapshot(
        version=1,
        clients=[_client(client_id, copywriter_id="writer-1") for client_id in ("c-2", "c-1", "c-3")],
        team=[TeamMember(id="writer-1", full_name="Wren", role="copywriter", rate=Decimal("1000"))],
    )
    report = build_finance_report(snapshot, PERIOD, settings=EngineSettings())
    by_client = {row.client_id: row.cost_breakdown for row in report.clients}
    assert by_client["c-1"].copywriting_cost == Decimal("334")
    assert by_client["c-2"].copywriting_cost == Decimal("333")
    assert by_client["c-1"].copywriter_client_count == 3
    assert by_client["c-1"].copywriter_name == "Wren"
    assert sum(costs.copywriting_cost for costs in by_client.values()) == Decimal("1000")

    (writer,) = report.team
    assert writer.total_earned == Decimal("1000")
    assert [detail.client_id for detail in writer.details] == ["c-1", "c-2", "c-3"]
    assert sum(detail.earned for detail in writer.details) == Decimal("1000")


def test_reassigning_copywriter_changes_past_periods():
    team = [TeamMember(id="writer-1", full_name="Wren", role="copywriter", rate=Decimal("900"))]
    before = AgencySnapshot(version=1, clients=[_client("c-1", copywriter_id="writer-1"), _client("c-2", copywriter_id="writer-1")], team=team)
    after = AgencySnapshot(version=2, clients=[_client("c-1", copywriter_id="writer-1"), _client("c-2")], team=team)
    old = build_finance_report(before, "2025-01", settings=EngineSettings())
    new = build_finance_report(after, "2025-01", settings=EngineSettings())
    assert old.clients[0].cost_breakdown.copywriting_cost == Decimal("450")
    assert new.clients[0].cost_breakdown.copywriting_cost == Decimal("900")


def test_video_rates_live_or_frozen():
    snapshot = AgencySnapshot(
        version=1,
        clients=[_client()],
        team=[TeamMember(id="editor-1", full_name="Eli", role="editor", rate=Decimal("120"))],
        videos=[
            VideoUnit(id="v-1", client_id="c-1", operator_id="editor-1", completed_at=_at(2), rate_at_completion=Decimal("80")),
            VideoUnit(id="v-2", client_id="c-1", operator_id="editor-1", completed_at=_at(3), status="in_progress"),
        ],
    )
    live = build_finance_report(snapshot, PERIOD, settings=EngineSettings())
    frozen = build_finance_report(snapshot, PERIOD, settings=EngineSettings(freeze_video_rates=True))
    assert live.clients[0].cost_breakdown.video_cost == Decimal("120")
    assert live.clients[0].cost_breakdown.video_count == 1
    assert frozen.clients[0].cost_breakdown.video_cost == Decimal("80")
    assert live.team[0].total_earned == Decimal("120")
    assert live.team[0].videos_delivered == 1


def test_video_without_operator_uses_default_rate():
    anomalies = AnomalyLog()
    snapshot = AgencySnapshot(
        version=1,
        clients=[_client()],
        videos=[VideoUnit(id="v-1", client_id="c-1", completed_at=_at(2))],
    )
    report = build_finance_report(snapshot, PERIOD, settings=EngineSettings(), anomalies=anomalies)
    assert report.clients[0].cost_breakdown.video_cost == Decimal("100")
    assert anomalies.counts["video_rate_defaulted"] == 1


def test_designer_earnings_grouped_by_client():
    report = build_finance_report(_scenario_snapshot(), PERIOD, settings=EngineSettings())
    (designer,) = report.team
    assert designer.designs_delivered == 1
    assert designer.total_earned == Decimal("40")
    assert designer.clients == ["Company c-1"]
    assert designer.details[0].count == 1


def test_billing_status():
    ctx_day = date(2025, 3, 15)
    payments = [ClientPayment(id="pay-1", client_id="c-1", amount=Decimal("200"), payment_date=date(2025, 3, 1))]
    cases = {
        "critical": _client(project_end_date=date(2025, 2, 28)),
        "late": _client(project_end_date=date(2025, 12, 31)),
        "on_track": _client(),
    }
    for expected, client in cases.items():
        snapshot = AgencySnapshot(version=1, clients=[client], payments=payments)
        (row,) = build_finance_report(snapshot, PERIOD, as_of=ctx_day, settings=EngineSettings()).clients
        assert row.status == expected
        assert row.total_paid == Decimal("200")
        assert row.remaining == Decimal("800")
        assert row.progress == 20


def test_finance_summary_totals():
    snapshot = _scenario_snapshot(
        clients=[_client(monthly_price=Decimal("300"), advance_received=Decimal("100"))],
        payments=[
            ClientPayment(id="pay-1", client_id="c-1", amount=Decimal("200"), payment_date=date(2025, 3, 15)),
            ClientPayment(id="pay-0", client_id="c-1", amount=Decimal("50"), payment_date=date(2025, 2, 1)),
        ],
        expenses=[
            Expense(id="e-1", month="2025-03", amount=Decimal("60")),
            Expense(id="e-0", month="2025-02", amount=Decimal("10")),
        ],
    )
    summary = build_finance_report(snapshot, PERIOD, as_of=date(2025, 3, 15), settings=EngineSettings()).summary
    assert summary.revenue_month == Decimal("300")
    assert summary.revenue_total == Decimal("1000")
    assert summary.collected_month == Decimal("300")
    assert summary.remaining_to_collect == Decimal("650")
    assert summary.team_payroll_month == Decimal("40")
    assert summary.expenses_month == Decimal("100")
    assert summary.profit_month == Decimal("200")
    assert summary.profit_total == Decimal("240")
    assert summary.daily_collected == Decimal("200")
    assert summary.daily_revenue == Decimal("10")


def test_parallel_client_computation_matches_sequential():
    clients = [_client(f"c-{index}", copywriter_id="writer-1") for index in range(6)]
    snapshot = _scenario_snapshot(
        clients=clients,
        team=[TeamMember(id="writer-1", full_name="Wren", role="copywriter", rate=Decimal("700"))],
    )
    sequential = build_finance_report(snapshot, PERIOD, settings=EngineSettings(max_workers=1))
    parallel = build_finance_report(snapshot, PERIOD, settings=EngineSettings(max_workers=4))
    assert sequential == parallel


def test_billing_window_bounds():
    window = BillingWindow.for_month("2025-12")
    assert window.contains(datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc))
    assert not window.contains(datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert window.contains(datetime(2025, 12, 1))
    assert not window.contains(None)
    with pytest.raises(ValueError):
        BillingWindow.for_month("2025-13")
    with pytest.raises(ValueError):
        BillingWindow.for_month("March")
