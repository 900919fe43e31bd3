"""
progress.py — Growth progress projection and stage derivation.

Progress is tracked on the plan's primary generation (generation 0) only,
relative to a caller-supplied "now", so historical as-of views work the same
as today's view.

Algorithm:
1. Failed plans → 0
2. Harvest date via the override chain:
   harvest_date → estimated_harvest_date → sowing_date + days_to_harvest
   (60 days when the variety is unknown)
3. progress = elapsed / total * 100, clamped to [0, 100]

Stage (sowing|growing|harvest-ready|harvested|failed) is derived from the
progress value and the plan status on every read and never stored.
"""

from models import (
    SowingPlan, SOWING, GROWING, HARVEST_READY, HARVESTED, FAILED,
    STATUS_DAMAGED, STATUS_FAILED,
)
from utils.dates import parse_date, parse_moment, add_days, days_between, to_iso


DEFAULT_DAYS_TO_HARVEST = 60
SOWING_STAGE_MAX_PROGRESS = 20


def default_harvest_date(plan, variety=None):
    """Projected harvest of generation 0, ignoring overrides.

    None if undated or past the last representable date.
    """
    sowing = parse_date(plan.sowing_date)
    if sowing is None:
        return None
    days = variety.days_to_harvest if variety is not None else DEFAULT_DAYS_TO_HARVEST
    try:
        return add_days(sowing, days)
    except OverflowError:
        return None


def effective_harvest_date(plan, variety=None):
    """Harvest date after applying the actual/estimated override chain."""
    actual = parse_date(plan.harvest_date)
    if actual is not None:
        return actual
    estimated = parse_date(plan.estimated_harvest_date)
    if estimated is not None:
        return estimated
    return default_harvest_date(plan, variety)


def calculate_progress(now, plan, variety=None):
    """
    Compute growth progress of a sowing plan as a percentage.

    Args:
        now: Reference moment (date, datetime or ISO string)
        plan: SowingPlan
        variety: CropVariety or None (falls back to 60 days to harvest)

    Returns:
        Float in [0, 100], or None when a date cannot be parsed.
    """
    if plan.status == STATUS_FAILED:
        return 0.0

    sowing = parse_moment(plan.sowing_date)
    current = parse_moment(now)
    harvest = parse_moment(effective_harvest_date(plan, variety))
    if sowing is None or current is None or harvest is None:
        return None

    total = (harvest - sowing).total_seconds()
    elapsed = (current - sowing).total_seconds()

    # Harvest on or before the sowing day: done as soon as it is sown
    if total <= 0:
        return 100.0 if elapsed >= 0 else 0.0

    return min(max(elapsed / total * 100.0, 0.0), 100.0)


def get_stage(progress, status=None, harvest_date=None):
    """
    Classify a plan into its growth stage.

    Damaged plans never report 'sowing'. A missing progress value (None)
    is treated as 0.
    """
    if status == STATUS_FAILED:
        return FAILED
    if harvest_date:
        return HARVESTED

    value = progress or 0.0
    if status == STATUS_DAMAGED:
        return HARVEST_READY if value >= 100 else GROWING

    if value >= 100:
        return HARVEST_READY
    if value <= SOWING_STAGE_MAX_PROGRESS:
        return SOWING
    return GROWING


def plan_stage(now, plan, variety=None):
    """Stage of `plan` as of `now`."""
    return get_stage(calculate_progress(now, plan, variety), plan.status, plan.harvest_date)


def days_until_harvest(now, plan, variety=None):
    """Whole days left until the effective harvest date (never negative)."""
    current = parse_date(now)
    harvest = effective_harvest_date(plan, variety)
    if current is None or harvest is None:
        return None
    return max(0, days_between(current, harvest))


def track_plan(now, plan, variety=None):
    """
    Build the tracking row shown for one plan.

    Returns:
        Dict with plan_id, progress, stage, harvest_date, days_to_harvest
        and status; None for task plans.
    """
    if not isinstance(plan, SowingPlan):
        return None

    progress = calculate_progress(now, plan, variety)
    return {
        'plan_id': plan.id,
        'crop_id': plan.crop_id,
        'variety_id': plan.variety_id,
        'variety_name': variety.name if variety is not None else None,
        'progress': round(progress, 1) if progress is not None else None,
        'stage': get_stage(progress, plan.status, plan.harvest_date),
        'harvest_date': to_iso(effective_harvest_date(plan, variety)),
        'days_to_harvest': days_until_harvest(now, plan, variety),
        'status': plan.status,
    }
