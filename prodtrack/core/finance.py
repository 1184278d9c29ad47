"""Per-client cost, billing and team earnings over a billing window.

Costs are recomputed from the current snapshot each time:

* video units are priced at their operator's *current* rate unless
  ``freeze_video_rates`` is set and the unit carries ``rate_at_completion``;
* design cost is the price of every item whose current version was approved
  inside the window;
* a copywriter's monthly retainer is split across the clients assigned to
  them *now*, so reassigning a client also moves cost in past periods.

The effective cost charged against a contract is the larger of what was
actually produced and what the contracted quota commits the agency to.
"""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from prodtrack.core.periods import BillingWindow
from prodtrack.core.pricing import quantize
from prodtrack.core.schema import (
    ClientContract,
    ClientCostBreakdown,
    ClientFinancial,
    DesignQuota,
    DesignTypeBreakdown,
    EarningsDetail,
    FinanceReport,
    FinanceSummary,
    PaymentLine,
    ProjectReport,
    TeamMember,
    TeamMemberEarnings,
    VideoUnit,
    WorkItemType,
)
from prodtrack.core.settings import EngineSettings, get_settings
from prodtrack.core.status import build_project_report
from prodtrack.core.validation import AnomalyLog
from prodtrack.domain import AgencySnapshot

logger = logging.getLogger(__name__)

UNASSIGNED_CLIENT = "Unassigned"

DESIGN_TYPE_FIELDS: dict[WorkItemType, str] = {
    "Miniature": "miniatures",
    "Post": "posts",
    "Logo": "logos",
    "Carrousel": "carousels",
}


@dataclass(frozen=True, slots=True)
class ApprovedDesign:
    project_id: str
    client_id: str | None
    label: str
    item_type: WorkItemType
    price: Decimal
    designer_id: str | None


@dataclass(frozen=True, slots=True)
class CopywriterShare:
    member: TeamMember
    amount: Decimal
    client_count: int


@dataclass
class FinanceContext:
    """Read-only lookups shared by every per-client computation."""

    settings: EngineSettings
    window: BillingWindow
    as_of: date
    team_by_id: dict[str, TeamMember]
    clients_by_id: dict[str, ClientContract]
    videos: list[VideoUnit]
    designs: list[ApprovedDesign]
    shares: dict[str, CopywriterShare]
    payments_by_client: dict[str, list[PaymentLine]] = field(default_factory=dict)

    def client_name(self, client_id: str | None) -> str:
        client = self.clients_by_id.get(client_id or "")
        return client.company_name if client else UNASSIGNED_CLIENT


def _money(value: Decimal, settings: EngineSettings) -> Decimal:
    return quantize(value, settings)


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if not denominator:
        return Decimal("0")
    return (numerator / denominator).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def _percent(numerator: Decimal, denominator: Decimal) -> int:
    if not denominator:
        return 0
    return int((numerator / denominator * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def allocate_evenly(amount: Decimal, keys: Sequence[str]) -> dict[str, Decimal]:
    """Split ``amount`` into whole-unit shares that add back up to ``amount``.

    Every key gets ``floor(amount / n)``; leftover whole units go one each to
    the first keys, and any sub-unit remainder to the first key.
    """

    if not keys or amount <= 0:
        return {key: Decimal("0") for key in keys}
    count = len(keys)
    base = (amount / count).quantize(Decimal("1"), rounding=ROUND_DOWN)
    shares = {key: base for key in keys}
    remainder = amount - base * count
    for key in keys:
        if remainder < 1:
            break
        shares[key] += 1
        remainder -= 1
    if remainder:
        shares[keys[0]] += remainder
    return shares


def copywriter_shares(snapshot: AgencySnapshot) -> dict[str, CopywriterShare]:
    """Map client id to its share of the assigned copywriter's retainer."""

    clients = snapshot.active_clients()
    shares: dict[str, CopywriterShare] = {}
    for member in snapshot.active_team():
        if member.role != "copywriter":
            continue
        assigned = sorted(client.id for client in clients if client.copywriter_id == member.id)
        allocation = allocate_evenly(member.rate, assigned)
        for client_id, amount in allocation.items():
            shares[client_id] = CopywriterShare(member=member, amount=amount, client_count=len(assigned))
    return shares


def approved_designs(reports: Iterable[ProjectReport], window: BillingWindow) -> list[ApprovedDesign]:
    approved: list[ApprovedDesign] = []
    for report in reports:
        for state in report.items:
            if state.status != "approved" or not window.contains(state.reviewed_at):
                continue
            approved.append(
                ApprovedDesign(
                    project_id=report.project_id,
                    client_id=report.client_id,
                    label=state.item.label,
                    item_type=state.item.type,
                    price=state.price,
                    designer_id=state.designer_id,
                )
            )
    return approved


def completed_videos(videos: Iterable[VideoUnit], window: BillingWindow) -> list[VideoUnit]:
    return [unit for unit in videos if unit.status == "completed" and window.contains(unit.completed_at)]


def video_rate(unit: VideoUnit, ctx: FinanceContext, anomalies: AnomalyLog | None = None) -> Decimal:
    if ctx.settings.freeze_video_rates and unit.rate_at_completion is not None:
        return unit.rate_at_completion
    member = ctx.team_by_id.get(unit.operator_id or "")
    if member is None:
        if anomalies is not None:
            anomalies.record("video_rate_defaulted", video_id=unit.id, operator_id=unit.operator_id)
        return ctx.settings.default_video_rate
    return member.rate


def _contract_video_rate(client: ClientContract, videos: Sequence[VideoUnit], ctx: FinanceContext) -> Decimal:
    editor = ctx.team_by_id.get(client.editor_id or "")
    if editor is not None:
        return editor.rate
    if videos:
        return video_rate(videos[-1], ctx)
    return ctx.settings.default_video_rate


def compute_cost_breakdown(
    client: ClientContract,
    ctx: FinanceContext,
    anomalies: AnomalyLog | None = None,
) -> ClientCostBreakdown:
    settings = ctx.settings

    client_videos = [unit for unit in ctx.videos if unit.client_id == client.id]
    video_cost = sum((video_rate(unit, ctx, anomalies) for unit in client_videos), Decimal("0"))
    rate = _contract_video_rate(client, client_videos, ctx)

    client_designs = [design for design in ctx.designs if design.client_id == client.id]
    design_cost = sum((design.price for design in client_designs), Decimal("0"))
    type_counts = Counter(DESIGN_TYPE_FIELDS[design.item_type] for design in client_designs)

    share = ctx.shares.get(client.id)
    copywriting_cost = share.amount if share else Decimal("0")

    quota = DesignQuota(
        miniatures=client.design_miniatures_per_month,
        posts=client.design_posts_per_month,
        logos=client.design_logos_per_month,
        carousels=client.design_carousels_per_month,
        thumbnails=client.videos_per_month if client.has_thumbnail_design else 0,
    )
    expected_designs = quota.miniatures + quota.posts + quota.logos + quota.thumbnails
    expected_cost = client.videos_per_month * rate + expected_designs * settings.unit_price + copywriting_cost

    actual_cost = video_cost + design_cost + copywriting_cost
    effective_cost = max(actual_cost, expected_cost)
    net_profit = client.total_contract - effective_cost
    if not client.total_contract and anomalies is not None:
        anomalies.record("zero_contract_value", client_id=client.id)

    return ClientCostBreakdown(
        video_cost=_money(video_cost, settings),
        video_count=len(client_videos),
        video_rate=_money(rate, settings),
        videos_expected=client.videos_per_month,
        design_cost=_money(design_cost, settings),
        design_count=len(client_designs),
        design_types=DesignTypeBreakdown(**type_counts),
        designs_expected=quota,
        copywriting_cost=_money(copywriting_cost, settings),
        copywriter_name=share.member.full_name if share else None,
        copywriter_client_count=share.client_count if share else 0,
        copywriter_monthly_rate=_money(share.member.rate, settings) if share else Decimal("0"),
        actual_cost=_money(actual_cost, settings),
        expected_cost=_money(expected_cost, settings),
        effective_cost=_money(effective_cost, settings),
        net_profit=_money(net_profit, settings),
        margin=_ratio(net_profit, client.total_contract),
        margin_percent=_percent(net_profit, client.total_contract),
    )


def _billing_status(client: ClientContract, remaining: Decimal, ctx: FinanceContext) -> str:
    if client.project_end_date is None:
        return "on_track"
    if remaining > 0 and client.project_end_date < ctx.as_of:
        return "critical"
    if remaining > client.total_contract * ctx.settings.late_remaining_ratio:
        return "late"
    return "on_track"


def compute_client_financial(client: ClientContract, ctx: FinanceContext) -> tuple[ClientFinancial, AnomalyLog]:
    anomalies = AnomalyLog()
    settings = ctx.settings
    payments = ctx.payments_by_client.get(client.id, [])
    total_paid = sum((line.amount for line in payments), Decimal("0")) + client.advance_received
    remaining = client.total_contract - total_paid

    financial = ClientFinancial(
        client_id=client.id,
        company_name=client.company_name,
        contact_name=client.contact_name,
        subscription_type=client.subscription_type,
        total_contract=_money(client.total_contract, settings),
        advance_received=_money(client.advance_received, settings),
        monthly_price=_money(client.monthly_price, settings),
        contract_duration_months=client.contract_duration_months,
        project_end_date=client.project_end_date,
        total_paid=_money(total_paid, settings),
        remaining=_money(max(Decimal("0"), remaining), settings),
        progress=_percent(total_paid, client.total_contract),
        status=_billing_status(client, remaining, ctx),
        cost_breakdown=compute_cost_breakdown(client, ctx, anomalies),
        payments=payments,
    )
    return financial, anomalies


def _group_details(rows: Iterable[tuple[str | None, Decimal]], ctx: FinanceContext) -> list[EarningsDetail]:
    details: dict[str | None, EarningsDetail] = {}
    for client_id, earned in rows:
        detail = details.get(client_id)
        if detail is None:
            detail = EarningsDetail(client_id=client_id, client_name=ctx.client_name(client_id))
            details[client_id] = detail
        detail.count += 1
        detail.earned += earned
    for detail in details.values():
        detail.earned = _money(detail.earned, ctx.settings)
    return list(details.values())


def compute_member_earnings(
    member: TeamMember,
    ctx: FinanceContext,
    anomalies: AnomalyLog | None = None,
) -> TeamMemberEarnings:
    settings = ctx.settings
    earnings = TeamMemberEarnings(
        member_id=member.id,
        full_name=member.full_name,
        role=member.role,
        rate=_money(member.rate, settings),
    )

    if member.role == "editor":
        units = [unit for unit in ctx.videos if unit.operator_id == member.id]
        earnings.details = _group_details(((unit.client_id, video_rate(unit, ctx, anomalies)) for unit in units), ctx)
        earnings.videos_delivered = len(units)
    elif member.role == "designer":
        designs = [design for design in ctx.designs if design.designer_id == member.id]
        earnings.details = _group_details(((design.client_id, design.price) for design in designs), ctx)
        earnings.designs_delivered = len(designs)
    elif member.role == "copywriter":
        earnings.details = [
            EarningsDetail(
                client_id=client_id,
                client_name=ctx.client_name(client_id),
                count=1,
                earned=_money(share.amount, settings),
            )
            for client_id, share in sorted(ctx.shares.items())
            if share.member.id == member.id
        ]
        earnings.total_earned = _money(member.rate, settings)
        earnings.clients = [detail.client_name for detail in earnings.details]
        return earnings
    else:
        return earnings

    earnings.total_earned = _money(sum((detail.earned for detail in earnings.details), Decimal("0")), settings)
    earnings.clients = [detail.client_name for detail in earnings.details]
    return earnings


def build_context(
    snapshot: AgencySnapshot,
    window: BillingWindow,
    reports: Sequence[ProjectReport],
    settings: EngineSettings,
    as_of: date | None = None,
) -> FinanceContext:
    payments_by_client: dict[str, list[PaymentLine]] = {}
    for payment in sorted(snapshot.payments, key=lambda p: p.payment_date, reverse=True):
        payments_by_client.setdefault(payment.client_id, []).append(
            PaymentLine(
                id=payment.id,
                amount=payment.amount,
                payment_date=payment.payment_date,
                payment_method=payment.payment_method,
                notes=payment.notes,
            )
        )
    return FinanceContext(
        settings=settings,
        window=window,
        as_of=as_of or (window.end - timedelta(days=1)).date(),
        team_by_id={member.id: member for member in snapshot.team},
        clients_by_id={client.id: client for client in snapshot.clients},
        videos=completed_videos(snapshot.videos, window),
        designs=approved_designs(reports, window),
        shares=copywriter_shares(snapshot),
        payments_by_client=payments_by_client,
    )


def compute_client_financials(
    clients: Sequence[ClientContract],
    ctx: FinanceContext,
    anomalies: AnomalyLog | None = None,
) -> list[ClientFinancial]:
    """Compute every client independently, in parallel when configured."""

    workers = min(ctx.settings.max_workers, len(clients)) if clients else 1
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(lambda client: compute_client_financial(client, ctx), clients))
    else:
        outcomes = [compute_client_financial(client, ctx) for client in clients]

    results: list[ClientFinancial] = []
    for financial, client_anomalies in outcomes:
        results.append(financial)
        if anomalies is not None:
            anomalies.merge(client_anomalies)
    return results


def compute_team_earnings(
    team: Sequence[TeamMember],
    ctx: FinanceContext,
    anomalies: AnomalyLog | None = None,
) -> list[TeamMemberEarnings]:
    return [compute_member_earnings(member, ctx, anomalies) for member in team]


def compute_finance_summary(
    snapshot: AgencySnapshot,
    team: Sequence[TeamMemberEarnings],
    ctx: FinanceContext,
) -> FinanceSummary:
    settings = ctx.settings
    clients = snapshot.active_clients()
    zero = Decimal("0")

    revenue_month = sum((client.monthly_price for client in clients), zero)
    revenue_total = sum((client.total_contract for client in clients), zero)
    advances = sum((client.advance_received for client in clients), zero)

    paid_month = sum((p.amount for p in snapshot.payments if ctx.window.contains_date(p.payment_date)), zero)
    paid_total = sum((p.amount for p in snapshot.payments), zero)
    paid_today = sum((p.amount for p in snapshot.payments if p.payment_date == ctx.as_of), zero)
    collected_month = paid_month + advances
    collected_total = paid_total + advances

    payroll = sum((member.total_earned for member in team), zero)
    manual_month = sum((e.amount for e in snapshot.expenses if e.month == ctx.window.period_month), zero)
    manual_total = sum((e.amount for e in snapshot.expenses), zero)
    expenses_month = manual_month + payroll
    days = Decimal(settings.days_per_month)

    return FinanceSummary(
        period_month=ctx.window.period_month,
        revenue_month=_money(revenue_month, settings),
        revenue_total=_money(revenue_total, settings),
        collected_month=_money(collected_month, settings),
        remaining_to_collect=_money(max(zero, revenue_total - collected_total), settings),
        expenses_month=_money(expenses_month, settings),
        team_payroll_month=_money(payroll, settings),
        profit_month=_money(collected_month - expenses_month, settings),
        profit_total=_money(collected_total - (manual_total + payroll), settings),
        daily_revenue=_money(revenue_month / days, settings),
        daily_collected=_money(paid_today, settings),
        daily_expenses=_money(expenses_month / days, settings),
    )


def build_project_reports(
    snapshot: AgencySnapshot,
    settings: EngineSettings | None = None,
    anomalies: AnomalyLog | None = None,
) -> list[ProjectReport]:
    settings = settings or get_settings()
    return [
        build_project_report(
            project,
            snapshot.deliveries_for(project.id),
            snapshot.decisions,
            settings,
            anomalies,
        )
        for project in snapshot.projects
    ]


def build_finance_report(
    snapshot: AgencySnapshot,
    period: str,
    as_of: date | None = None,
    settings: EngineSettings | None = None,
    anomalies: AnomalyLog | None = None,
    reports: Sequence[ProjectReport] | None = None,
) -> FinanceReport:
    settings = settings or get_settings()
    window = BillingWindow.for_month(period)
    if reports is None:
        reports = build_project_reports(snapshot, settings, anomalies)
    ctx = build_context(snapshot, window, reports, settings, as_of)

    if anomalies is not None:
        for design in ctx.designs:
            if design.client_id not in ctx.clients_by_id:
                anomalies.record("design_without_client", project_id=design.project_id, label=design.label)

    clients = compute_client_financials(snapshot.active_clients(), ctx, anomalies)
    team = compute_team_earnings(snapshot.active_team(), ctx, anomalies)
    summary = compute_finance_summary(snapshot, team, ctx)
    logger.info(
        "finance report %s: %d clients, %d team members, %d approved designs, %d videos",
        period,
        len(clients),
        len(team),
        len(ctx.designs),
        len(ctx.videos),
    )
    return FinanceReport(period_month=period, clients=clients, team=team, summary=summary)
