"""Raw store rows for tests, shaped like the Supabase tables."""
import itertools

_ids = itertools.count(1)


def _next_id(prefix):
    return f"{prefix}-{next(_ids)}"


def plan_row(
    budget_id=None,
    start_date=None,
    created_at="2024-01-01T00:00:00+00:00",
    customer_id="cust-1",
    lead_id=None,
    id=None,
    **payload,
):
    row = {
        "id": id or _next_id("plan"),
        "budget_id": budget_id,
        "customer_id": customer_id,
        "lead_id": lead_id,
        "start_date": start_date,
        "end_date": None,
        "created_at": created_at,
    }
    row.update(payload)
    return row


def assignment_row(
    budget_id,
    customer_id=None,
    lead_id=None,
    is_active=True,
    assigned_at="2024-01-01T00:00:00+00:00",
    id=None,
):
    return {
        "id": id or _next_id("asg"),
        "budget_id": budget_id,
        "customer_id": customer_id,
        "lead_id": lead_id,
        "is_active": is_active,
        "assigned_at": assigned_at,
        "notes": None,
    }


def program_row(id, **fields):
    row = {
        "id": id,
        "name": f"Program {id}",
        "nutrition_targets": {},
        "steps_goal": 0,
        "steps_instructions": None,
        "supplements": [],
        "eating_order": None,
        "eating_rules": None,
        "nutrition_template_id": None,
        "workout_template_id": None,
    }
    row.update(fields)
    return row
