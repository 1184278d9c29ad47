#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prodtrack.core.spec_parser import describe_specification


def build_snapshot(month: str) -> dict:
    day = f"{month}-10"
    return {
        "clients": [
            {
                "id": "client-1",
                "company_name": "Atelier Nord",
                "total_contract": "3000",
                "monthly_price": "1000",
                "advance_received": "500",
                "contract_duration_months": 3,
                "videos_per_month": 4,
                "design_posts_per_month": 2,
                "design_miniatures_per_month": 1,
                "copywriter_id": "writer-1",
                "editor_id": "editor-1",
            }
        ],
        "team": [
            {"id": "editor-1", "full_name": "Camille Editor", "role": "editor", "rate": "100"},
            {"id": "designer-1", "full_name": "Sacha Designer", "role": "designer", "rate": "0"},
            {"id": "writer-1", "full_name": "Noa Writer", "role": "copywriter", "rate": "600"},
        ],
        "projects": [
            {
                "id": "project-1",
                "client_id": "client-1",
                "title": "Launch campaign",
                "designer_id": "designer-1",
                "description": describe_specification(
                    {"Post": 2, "Miniature": 1, "Carrousel": 1},
                    carousel_pages=4,
                    free_text="Use the spring palette.",
                ),
            }
        ],
        "deliveries": [
            {"id": "d-1", "project_id": "project-1", "notes": "[Post 1] first draft", "submitted_at": f"{day}T09:00:00Z"},
            {"id": "d-2", "project_id": "project-1", "notes": "[Carrousel 1]", "submitted_at": f"{day}T10:00:00Z"},
            {"id": "d-3", "project_id": "project-1", "notes": "moodboard", "submitted_at": f"{day}T11:00:00Z"},
        ],
        "decisions": [
            {"delivery_id": "d-1", "decision": "approved", "reviewed_at": f"{day}T15:00:00Z"},
            {"delivery_id": "d-2", "decision": "revision_requested", "reviewed_at": f"{day}T16:00:00Z"},
        ],
        "videos": [
            {"id": "v-1", "client_id": "client-1", "operator_id": "editor-1", "completed_at": f"{day}T12:00:00Z"},
        ],
        "payments": [
            {"id": "p-1", "client_id": "client-1", "amount": "1000", "payment_date": day},
        ],
        "expenses": [
            {"id": "e-1", "month": month, "amount": "150", "label": "Software"},
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample snapshot JSON for PUT /api/snapshot")
    parser.add_argument("--month", required=True, help="Billing month, YYYY-MM")
    parser.add_argument("--output", required=True, help="Output file path (.json)")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(build_snapshot(args.month), indent=2), encoding="utf-8")

    print(f"sample snapshot written: {output}")


if __name__ == "__main__":
    main()
