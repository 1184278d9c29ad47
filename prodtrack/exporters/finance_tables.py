from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from prodtrack.core.schema import ClientFinancial, TeamMemberEarnings


def client_rows(rows: Iterable[ClientFinancial]) -> list[dict]:
    records = []
    for row in rows:
        costs = row.cost_breakdown
        records.append({
            "client_id": row.client_id,
            "company_name": row.company_name,
            "total_contract": row.total_contract,
            "total_paid": row.total_paid,
            "remaining": row.remaining,
            "status": row.status,
            "video_cost": costs.video_cost,
            "video_count": costs.video_count,
            "design_cost": costs.design_cost,
            "design_count": costs.design_count,
            "copywriting_cost": costs.copywriting_cost,
            "actual_cost": costs.actual_cost,
            "expected_cost": costs.expected_cost,
            "effective_cost": costs.effective_cost,
            "net_profit": costs.net_profit,
            "margin_percent": costs.margin_percent,
        })
    return records


def team_rows(rows: Iterable[TeamMemberEarnings]) -> list[dict]:
    records = []
    for member in rows:
        if not member.details:
            records.append({
                "member_id": member.member_id,
                "full_name": member.full_name,
                "role": member.role,
                "client_name": None,
                "count": 0,
                "earned": member.total_earned,
            })
        for detail in member.details:
            records.append({
                "member_id": member.member_id,
                "full_name": member.full_name,
                "role": member.role,
                "client_name": detail.client_name,
                "count": detail.count,
                "earned": detail.earned,
            })
    return records


def export_table(path: Path, records: list[dict]) -> Path:
    df = pd.DataFrame(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".xlsx":
        df.to_excel(path, index=False, engine="openpyxl")
    else:
        df.to_csv(path, index=False)
    return path


def export_client_financials(path: Path, rows: Iterable[ClientFinancial]) -> Path:
    return export_table(path, client_rows(rows))


def export_team_earnings(path: Path, rows: Iterable[TeamMemberEarnings]) -> Path:
    return export_table(path, team_rows(rows))
