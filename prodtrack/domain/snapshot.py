"""Domain entities for the record snapshot the engine computes over."""
from __future__ import annotations

from dataclasses import dataclass, field

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

COLLECTIONS: tuple[str, ...] = (
    "projects",
    "deliveries",
    "decisions",
    "clients",
    "team",
    "videos",
    "payments",
    "expenses",
)


@dataclass(slots=True)
class AgencySnapshot:
    """Immutable-by-convention view of every record at one ``version``."""

    version: int = 0
    projects: list[ProjectRecord] = field(default_factory=list)
    deliveries: list[DeliverySubmission] = field(default_factory=list)
    decisions: list[DecisionRecord] = field(default_factory=list)
    clients: list[ClientContract] = field(default_factory=list)
    team: list[TeamMember] = field(default_factory=list)
    videos: list[VideoUnit] = field(default_factory=list)
    payments: list[ClientPayment] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)

    def deliveries_for(self, project_id: str) -> list[DeliverySubmission]:
        return [delivery for delivery in self.deliveries if delivery.project_id == project_id]

    def project(self, project_id: str) -> ProjectRecord | None:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def active_clients(self) -> list[ClientContract]:
        return [client for client in self.clients if client.active]

    def active_team(self) -> list[TeamMember]:
        return [member for member in self.team if member.active]
