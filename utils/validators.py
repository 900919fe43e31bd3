"""
utils/validators.py — Input validation helpers.

Validates:
- Succession parameters (interval and count of at least 1)
- Schedule range (the last generation must still be a representable date)
- Sowing dates against the variety's sowing window (unless skipped)
- Complete sowing and task plans before they are stored
- Damage / loss reason codes

Every validator returns (True, None) or (False, error_message) and never
mutates its inputs.
"""

from models import REASON_CODES, SowingPlan, TaskPlan
from utils.dates import parse_date, is_within_month_range, month_name, add_days


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_succession(interval, count):
    """Succession interval and count must both be integers >= 1."""
    interval_value = _as_int(interval)
    count_value = _as_int(count)
    if interval_value is None or interval_value < 1:
        return False, "Succession interval must be at least 1 day."
    if count_value is None or count_value < 1:
        return False, "Succession count must be at least 1."
    return True, None


def validate_schedule_range(anchor_date, interval, count, extra_days=0):
    """
    Check that every generation of a succession stays within the calendar.

    Args:
        anchor_date: Sowing or start date of generation 0
        interval, count: Succession parameters (already validated)
        extra_days: Days after the last sowing that must also fit
            (days_to_harvest for sowing plans)
    """
    anchor = parse_date(anchor_date)
    if anchor is None:
        return False, "Invalid date."
    try:
        add_days(anchor, (int(count) - 1) * int(interval) + int(extra_days))
    except OverflowError:
        return False, "The succession runs past the last supported date."
    return True, None


def validate_sowing_window(day, variety, skip_sowing_date=False):
    """
    Check a sowing date against the variety's valid sowing months.

    Transplant-only plans (skip_sowing_date) are not checked.
    """
    if skip_sowing_date:
        return True, None
    sowing = parse_date(day)
    if sowing is None:
        return False, "Invalid sowing date."
    if not is_within_month_range(sowing, variety.start_month, variety.end_month):
        return False, (
            f"This variety can only be sown between {month_name(variety.start_month)} "
            f"and {month_name(variety.end_month)}."
        )
    return True, None


def validate_sowing_plan(plan, variety, check_window=True):
    """
    Validate a sowing plan against its resolved variety.

    Args:
        plan: SowingPlan to validate
        variety: CropVariety or None (None is rejected)
        check_window: Whether to enforce the variety sowing months

    Returns:
        (True, None) or (False, error_message).
    """
    if not isinstance(plan, SowingPlan):
        return False, "Not a sowing plan."
    if not plan.crop_id:
        return False, "Please select a crop."
    if not plan.variety_id:
        return False, "Please select a variety."
    if variety is None:
        return False, "Invalid variety selected."
    if parse_date(plan.sowing_date) is None:
        return False, "Invalid sowing date."

    ok, error = validate_succession(plan.succession_interval, plan.succession_count)
    if not ok:
        return False, error

    ok, error = validate_schedule_range(
        plan.sowing_date, plan.succession_interval, plan.succession_count,
        extra_days=max(variety.days_to_transplant, variety.days_to_harvest),
    )
    if not ok:
        return False, error

    if check_window:
        return validate_sowing_window(plan.sowing_date, variety, plan.skip_sowing_date)
    return True, None


def validate_task_plan(plan):
    """Validate a task plan (name, start date, succession parameters)."""
    if not isinstance(plan, TaskPlan):
        return False, "Not a task plan."
    if not (plan.task_name or '').strip():
        return False, "Please enter a task name."
    if parse_date(plan.start_date) is None:
        return False, "Invalid start date."
    ok, error = validate_succession(plan.succession_interval, plan.succession_count)
    if not ok:
        return False, error
    return validate_schedule_range(plan.start_date, plan.succession_interval, plan.succession_count)


def validate_reason_code(code):
    """Damage and loss reports must carry a known reason code."""
    if code not in REASON_CODES:
        return False, f"Unknown reason: {code}. Expected one of {', '.join(REASON_CODES)}."
    return True, None
