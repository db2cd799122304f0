"""
Seed data script — populates the database with demo contracts, their care
schedules and a few worked tasks and care logs.

Usage: cd backend && python seed_data.py
"""
import os
import sys
from datetime import timedelta

import django

# Setup Django
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'care_desk.settings')
django.setup()

from app.models.contract import Contract
from app.principal import Principal
from app.services.completion_resolver import CompletionReport, complete_task
from app.services.contract_service import create_contract, record_care_log
from app.services.task_generator import on_contract_created
from app.utils import utcnow


AGENTS = [
    Principal(id="agent-amy", role="agent", team_id="team-north", name="Amy Lin"),
    Principal(id="agent-ben", role="agent", team_id="team-north", name="Ben Wu"),
    Principal(id="agent-cara", role="agent", team_id="team-south", name="Cara Ho"),
]

CONTRACTS = [
    # ─── Signed a while ago: onboarding done, periodic care under way ───
    {
        "agent_index": 0,
        "days_ago": 75,
        "parent_name": "Grace Chen",
        "student_name": "Ivy Chen",
        "phone": "+886-912-000-101",
        "email": "grace.chen@example.com",
        "product": "English 1:1 (24 months)",
        "contract_kind": "new",
        "payment_method": "installments",
        "source": "referral",
        "product_cycle": 24,
    },
    {
        "agent_index": 1,
        "days_ago": 40,
        "parent_name": "Kevin Lee",
        "student_name": "Leo Lee",
        "phone": "+886-912-000-102",
        "line_id": "kevinlee88",
        "product": "Math Group (12 months)",
        "contract_kind": "renewal",
        "payment_method": "card",
        "source": "renewal",
        "product_cycle": 12,
    },

    # ─── Signed this week: everything still ahead ───────────────────────
    {
        "agent_index": 2,
        "days_ago": 2,
        "parent_name": "Mei Wang",
        "student_name": "Nora Wang",
        "phone": "+886-912-000-103",
        "email": "mei.wang@example.com",
        "product": "Science Lab (6 months)",
        "contract_kind": "new",
        "payment_method": "transfer",
        "source": "ads",
        "product_cycle": 6,
    },
    {
        "agent_index": 0,
        "days_ago": 0,
        "parent_name": "Oscar Huang",
        "student_name": "Penny Huang",
        "phone": "+886-912-000-104",
        "product": "English 1:1 (24 months)",
        "contract_kind": "new",
        "payment_method": "card",
        "source": "walk-in",
    },
]

# (contract index, task position in the generated batch, completion report)
COMPLETIONS = [
    (0, 0, {"outcome": "connected", "note": "Welcome call done, schedule confirmed."}),
    (0, 1, {"outcome": "connected", "note": "Ivy loved the first lesson.", "renewal_likely": True}),
    (0, 2, {"outcome": "no_answer", "next_contact_days": 3}),
    (1, 0, {"outcome": "connected", "note": "Parent asked about homework load.",
            "service_tag": "needs_help", "next_contact_days": 5}),
]

CARE_LOGS = [
    (0, "Parent called in to move Thursday's lesson.", "connected"),
    (1, "Sent the term calendar over LINE.", "connected"),
]


def seed():
    # Check if already seeded
    existing = Contract.objects.count()
    if existing > 0:
        print(f"Database already has {existing} contracts. Skipping seed.")
        print("Run 'python manage.py flush --no-input' to clear, then re-seed.")
        return

    now = utcnow()

    # Create contracts and lay out their schedules
    contracts = []
    schedules = []
    for contract_data in CONTRACTS:
        data = dict(contract_data)
        agent = AGENTS[data.pop("agent_index")]
        data["start_date"] = now - timedelta(days=data.pop("days_ago"))
        contract = create_contract(data, agent)
        # The on-commit job may run asynchronously; generation is idempotent
        schedules.append(on_contract_created(contract))
        contracts.append(contract)
        print(f"  {contract.contract_no} {contract.student_name:12s} | {agent.name} | {len(schedules[-1])} tasks")

    print(f"Created {len(contracts)} contracts")

    # Work a few tasks
    for contract_idx, position, report_data in COMPLETIONS:
        data = dict(report_data)
        days = data.pop("next_contact_days", None)
        task = schedules[contract_idx][position]
        report = CompletionReport(
            completed_by=contracts[contract_idx].owner_id,
            next_contact_date=now + timedelta(days=days) if days else None,
            **data,
        )
        result = complete_task(task.id, report)
        print(f"  {task.title} for {task.client_name}: {report.outcome}"
              f"{' (follow-up booked)' if result.follow_up else ''}")

    for contract_idx, content, outcome in CARE_LOGS:
        contract = contracts[contract_idx]
        owner = next(agent for agent in AGENTS if agent.id == contract.owner_id)
        record_care_log(contract.id, content, outcome=outcome, author=owner)

    print(f"Recorded {len(CARE_LOGS)} care logs")
    print(f"\nRun the server: python manage.py runserver")
    print(f"Run the worker: python manage.py qcluster")


if __name__ == "__main__":
    seed()
