"""Seed a demo goal tree (company -> team -> individual) for one tenant."""
from __future__ import annotations

import importlib
import logging
import sys
from datetime import date
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from goal_tracker.container import build_container
from goal_tracker.core.enums import Role
from goal_tracker.goals.model import Actor

DEMO_TENANT_ID = 1
DEMO_ADMIN_ID = 1


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG))
    service = container.goal_service

    year = date.today().year
    admin = Actor(user_id=DEMO_ADMIN_ID, tenant_id=DEMO_TENANT_ID, role=Role.ADMIN)

    company = service.create_goal(
        actor=admin,
        data={
            "title": f"Grow ARR 40% in {year}",
            "type": "COMPANY",
            "start_date": f"{year}-01-01",
            "due_date": f"{year}-12-31",
            "key_results": [
                {"title": "New ARR (k$)", "target_value": 2000, "unit": "k$", "weight": 2},
                {"title": "Net revenue retention (%)", "target_value": 110, "unit": "%"},
            ],
        },
    )
    team = service.create_goal(
        actor=admin,
        data={
            "title": "Ship self-serve onboarding",
            "type": "TEAM",
            "department_id": 1,
            "parent_id": company.goal.goal_id,
            "start_date": f"{year}-01-01",
            "due_date": f"{year}-06-30",
            "key_results": [{"title": "Onboarding steps automated", "target_value": 8}],
        },
    )
    service.create_goal(
        actor=admin,
        data={
            "title": "Publish 6 onboarding guides",
            "type": "INDIVIDUAL",
            "parent_id": team.goal.goal_id,
            "target_value": 6,
            "unit": "guides",
            "start_date": f"{year}-01-01",
            "due_date": f"{year}-03-31",
        },
    )

    tree = service.get_hierarchy(tenant_id=DEMO_TENANT_ID)
    print(f"OK: Seeded demo goals for tenant {DEMO_TENANT_ID} (roots={len(tree)})")


if __name__ == "__main__":
    main()
