from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, constr

WorkItemType = Literal["Miniature", "Post", "Logo", "Carrousel"]
ItemStatus = Literal["pending", "delivered", "revision_requested", "approved"]
Decision = Literal["approved", "revision_requested"]
TeamRole = Literal["editor", "designer", "copywriter", "other"]
BillingStatus = Literal["on_track", "late", "critical"]

PeriodMonth = constr(pattern=r"^\d{4}-\d{2}$")


class WorkItemSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: WorkItemType
    sequence_index: int
    position: int
    label: str
    page_count: int | None = None


class ParsedSpecification(BaseModel):
    items: list[WorkItemSpec] = Field(default_factory=list)
    free_text: str = ""
    rejected_segments: list[str] = Field(default_factory=list)


class DeliveryPayload(BaseModel):
    kind: Literal["file", "link"] = "file"
    file_path: str | None = None
    external_link: str | None = None
    link_type: str | None = None


class ProjectRecord(BaseModel):
    id: str
    client_id: str | None = None
    title: str = ""
    description: str | None = None
    designer_id: str | None = None
    recorded_completed: int | None = None


class DeliverySubmission(BaseModel):
    id: str
    project_id: str
    label: str | None = None
    notes: str | None = None
    submitted_at: datetime
    designer_id: str | None = None
    payload: DeliveryPayload = Field(default_factory=DeliveryPayload)


class DecisionRecord(BaseModel):
    id: str | None = None
    delivery_id: str
    decision: Decision
    reviewed_at: datetime
    feedback: str | None = None


class ClientContract(BaseModel):
    id: str
    company_name: str
    contact_name: str | None = None
    subscription_type: str | None = None
    total_contract: Decimal = Decimal("0")
    monthly_price: Decimal = Decimal("0")
    advance_received: Decimal = Decimal("0")
    contract_duration_months: int = 1
    project_end_date: date | None = None
    videos_per_month: int = 0
    design_miniatures_per_month: int = 0
    design_posts_per_month: int = 0
    design_logos_per_month: int = 0
    design_carousels_per_month: int = 0
    has_thumbnail_design: bool = False
    copywriter_id: str | None = None
    editor_id: str | None = None
    active: bool = True


class TeamMember(BaseModel):
    id: str
    full_name: str
    role: TeamRole = "editor"
    # per video for editors, monthly retainer for copywriters
    rate: Decimal = Decimal("0")
    active: bool = True


class VideoUnit(BaseModel):
    id: str
    client_id: str | None = None
    operator_id: str | None = None
    title: str = ""
    status: str = "completed"
    completed_at: datetime | None = None
    rate_at_completion: Decimal | None = None


class ClientPayment(BaseModel):
    id: str
    client_id: str
    amount: Decimal
    payment_date: date
    payment_method: str = "cash"
    notes: str | None = None


class Expense(BaseModel):
    id: str
    month: PeriodMonth
    amount: Decimal
    label: str = ""


# ----------------------------------------------------------------------
# derived results
# ----------------------------------------------------------------------


class OrphanDelivery(BaseModel):
    delivery_id: str
    project_id: str
    label: str | None = None
    reason: Literal["unlabelled", "unknown_label"]
    submitted_at: datetime


class ItemState(BaseModel):
    item: WorkItemSpec
    status: ItemStatus = "pending"
    price: Decimal = Decimal("0")
    current_delivery_id: str | None = None
    batch_delivery_ids: list[str] = Field(default_factory=list)
    decision_id: str | None = None
    reviewed_at: datetime | None = None
    designer_id: str | None = None
    superseded_count: int = 0


class ProjectSummary(BaseModel):
    total_items: int = 0
    completed_items: int = 0
    percent_complete: int = 0
    counts_by_status: dict[str, int] = Field(default_factory=dict)
    recorded_completed: int | None = None
    counter_drift: bool = False


class ProjectReport(BaseModel):
    project_id: str
    client_id: str | None = None
    title: str = ""
    items: list[ItemState] = Field(default_factory=list)
    summary: ProjectSummary = Field(default_factory=ProjectSummary)
    total_price: Decimal = Decimal("0")
    orphans: list[OrphanDelivery] = Field(default_factory=list)
    free_text: str = ""
    rejected_segments: list[str] = Field(default_factory=list)


class DesignTypeBreakdown(BaseModel):
    miniatures: int = 0
    posts: int = 0
    logos: int = 0
    carousels: int = 0


class DesignQuota(BaseModel):
    miniatures: int = 0
    posts: int = 0
    logos: int = 0
    carousels: int = 0
    thumbnails: int = 0


class ClientCostBreakdown(BaseModel):
    video_cost: Decimal = Decimal("0")
    video_count: int = 0
    video_rate: Decimal = Decimal("0")
    videos_expected: int = 0
    design_cost: Decimal = Decimal("0")
    design_count: int = 0
    design_types: DesignTypeBreakdown = Field(default_factory=DesignTypeBreakdown)
    designs_expected: DesignQuota = Field(default_factory=DesignQuota)
    copywriting_cost: Decimal = Decimal("0")
    copywriter_name: str | None = None
    copywriter_client_count: int = 0
    copywriter_monthly_rate: Decimal = Decimal("0")
    actual_cost: Decimal = Decimal("0")
    expected_cost: Decimal = Decimal("0")
    effective_cost: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    margin: Decimal = Decimal("0")
    margin_percent: int = 0


class PaymentLine(BaseModel):
    id: str
    amount: Decimal
    payment_date: date
    payment_method: str
    notes: str | None = None


class ClientFinancial(BaseModel):
    client_id: str
    company_name: str
    contact_name: str | None = None
    subscription_type: str | None = None
    total_contract: Decimal = Decimal("0")
    advance_received: Decimal = Decimal("0")
    monthly_price: Decimal = Decimal("0")
    contract_duration_months: int = 1
    project_end_date: date | None = None
    total_paid: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    progress: int = 0
    status: BillingStatus = "on_track"
    cost_breakdown: ClientCostBreakdown = Field(default_factory=ClientCostBreakdown)
    payments: list[PaymentLine] = Field(default_factory=list)


class EarningsDetail(BaseModel):
    client_id: str | None = None
    client_name: str
    count: int = 0
    earned: Decimal = Decimal("0")


class TeamMemberEarnings(BaseModel):
    member_id: str
    full_name: str
    role: TeamRole
    rate: Decimal = Decimal("0")
    videos_delivered: int = 0
    designs_delivered: int = 0
    total_earned: Decimal = Decimal("0")
    clients: list[str] = Field(default_factory=list)
    details: list[EarningsDetail] = Field(default_factory=list)


class FinanceSummary(BaseModel):
    period_month: str
    revenue_month: Decimal = Decimal("0")
    revenue_total: Decimal = Decimal("0")
    collected_month: Decimal = Decimal("0")
    remaining_to_collect: Decimal = Decimal("0")
    expenses_month: Decimal = Decimal("0")
    team_payroll_month: Decimal = Decimal("0")
    profit_month: Decimal = Decimal("0")
    profit_total: Decimal = Decimal("0")
    daily_revenue: Decimal = Decimal("0")
    daily_collected: Decimal = Decimal("0")
    daily_expenses: Decimal = Decimal("0")


class FinanceReport(BaseModel):
    period_month: str
    clients: list[ClientFinancial] = Field(default_factory=list)
    team: list[TeamMemberEarnings] = Field(default_factory=list)
    summary: FinanceSummary
    rule_version: str = "finance_v1"
