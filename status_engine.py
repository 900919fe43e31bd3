"""
status_engine.py — Plan status state machine and harvest re-projection.

States (SowingPlan.status):
- None (active)  → damaged, failed, harvested
- damaged        → damaged, failed, harvested
- failed         → terminal
- harvested      → terminal (implied by harvest_date being set)

Transitions:
- report_damage: extends the harvest estimate by the damage multiplier
    remaining = max(0, current_harvest - report_date) days
    new_harvest = report_date + ceil(remaining * multiplier)
  The multiplier is applied to whatever estimate is current, so repeated
  reports compound.
- report_loss: marks the plan failed; dates are left alone
- update_harvest_estimate: overwrites estimated_harvest_date, keeps status
- mark_harvested: records the actual harvest date (terminal)

Every transition returns (updated_plan, None) or (None, error_message).
The plan passed in is never modified; a new instance is returned.
"""

import math
from dataclasses import replace

from models import (
    SowingPlan, STATUS_DAMAGED, STATUS_FAILED, STATUS_HARVESTED,
    DEFAULT_DAMAGE_MULTIPLIER,
)
from progress import effective_harvest_date
from utils.dates import parse_date, add_days, to_iso
from utils.validators import validate_reason_code


ACTION_DAMAGE = 'damage'
ACTION_LOSS = 'loss'
ACTION_ESTIMATE = 'harvest-estimate'
ACTION_HARVEST = 'harvest'

ACTIONS = (ACTION_DAMAGE, ACTION_LOSS, ACTION_ESTIMATE, ACTION_HARVEST)


def can_transition(plan, action):
    """
    Check whether `action` may be applied to `plan`.

    Returns:
        (True, None) if allowed, or (False, error_message).
    """
    if not isinstance(plan, SowingPlan):
        return False, "Status updates only apply to sowing plans."
    if action not in ACTIONS:
        return False, f"Unknown status action: {action}"
    if plan.is_terminal:
        if plan.status == STATUS_FAILED:
            return False, "This plan has been marked as failed."
        return False, "This plan has already been harvested."
    return True, None


def compute_damaged_harvest_date(current_harvest, report_date, multiplier=DEFAULT_DAMAGE_MULTIPLIER):
    """
    Extend the remaining growing time from report_date by `multiplier`.

    Args:
        current_harvest: Harvest date in force before the damage (date)
        report_date: Day the damage was observed (date)
        multiplier: Factor applied to the remaining days

    Returns:
        The new harvest date.

    Raises:
        OverflowError: if the new date is past the last representable date.
    """
    remaining_days = max(0, (current_harvest - report_date).days)
    return add_days(report_date, math.ceil(remaining_days * multiplier))


def _append_note(existing, report_date, text):
    entry = f"Reported on: {report_date}"
    if text:
        entry = f"{entry}\n{text.strip()}"
    if existing:
        return f"{existing}\n{entry}"
    return entry


def report_damage(plan, report_date, damage_type, variety=None, notes=''):
    """
    Record damage and push the harvest estimate back.

    Args:
        plan: SowingPlan (active or damaged)
        report_date: Date the damage was observed
        damage_type: Reason code (frost, pests, disease, weather, other)
        variety: CropVariety used for the default harvest projection
        notes: Optional free text appended to the plan notes

    Returns:
        (updated_plan, None) on success, or (None, error_message).
    """
    ok, error = can_transition(plan, ACTION_DAMAGE)
    if not ok:
        return None, error
    ok, error = validate_reason_code(damage_type)
    if not ok:
        return None, error

    report = parse_date(report_date)
    if report is None:
        return None, "Invalid report date."

    current_harvest = effective_harvest_date(plan, variety)
    if current_harvest is None:
        return None, "The plan has no valid sowing date."

    multiplier = plan.damage_multiplier or DEFAULT_DAMAGE_MULTIPLIER
    try:
        new_harvest = compute_damaged_harvest_date(current_harvest, report, multiplier)
    except OverflowError:
        return None, "The extended harvest date is out of range."

    return replace(
        plan,
        status=STATUS_DAMAGED,
        estimated_harvest_date=to_iso(new_harvest),
        damage_multiplier=multiplier,
        reason_code=damage_type,
        notes=_append_note(plan.notes, to_iso(report), notes),
    ), None


def report_loss(plan, report_date, loss_type, notes=''):
    """
    Mark a plan as failed (crop lost). Harvest dates are not recalculated.

    Returns:
        (updated_plan, None) on success, or (None, error_message).
    """
    ok, error = can_transition(plan, ACTION_LOSS)
    if not ok:
        return None, error
    ok, error = validate_reason_code(loss_type)
    if not ok:
        return None, error

    report = parse_date(report_date)
    if report is None:
        return None, "Invalid report date."

    return replace(
        plan,
        status=STATUS_FAILED,
        reason_code=loss_type,
        notes=_append_note(plan.notes, to_iso(report), notes),
    ), None


def update_harvest_estimate(plan, new_date):
    """
    Overwrite the estimated harvest date; the current status is kept.

    Returns:
        (updated_plan, None) on success, or (None, error_message).
    """
    ok, error = can_transition(plan, ACTION_ESTIMATE)
    if not ok:
        return None, error

    estimate = parse_date(new_date)
    if estimate is None:
        return None, "Invalid harvest estimate date."

    return replace(plan, estimated_harvest_date=to_iso(estimate)), None


def mark_harvested(plan, harvest_date):
    """
    Record the actual harvest. The plan becomes terminal.

    Returns:
        (updated_plan, None) on success, or (None, error_message).
    """
    ok, error = can_transition(plan, ACTION_HARVEST)
    if not ok:
        return None, error

    harvested_on = parse_date(harvest_date)
    if harvested_on is None:
        return None, "Invalid harvest date."

    return replace(plan, harvest_date=to_iso(harvested_on), status=STATUS_HARVESTED), None
