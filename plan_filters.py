"""
plan_filters.py — Plan selection for the tracking and saved-plans views.

Tracking filter: a sowing plan passes when
    stage in filters.stages
    AND (no group filter OR variety.group_id == group)
    AND (no crop filter OR plan.crop_id == crop)
Only plans already sown on the tracking date are considered.

The saved-plans list uses an independent month window (anchor date in the
displayed month) and a plan type filter.
"""

from collections import OrderedDict

from models import SowingPlan, TaskPlan, ALL_STAGES, PLAN_TYPE_SOWING, PLAN_TYPE_TASK
from progress import calculate_progress, get_stage
from utils.dates import parse_date


def matches_filter(plan, stage, variety, filters):
    """Apply the stage/group/crop composition to one plan."""
    if stage not in filters.stages:
        return False
    if filters.group_id:
        if variety is None or variety.group_id != filters.group_id:
            return False
    if filters.crop_id and plan.crop_id != filters.crop_id:
        return False
    return True


def filter_tracked_plans(plans, now, get_variety, filters):
    """
    Select the sowing plans shown in the tracking view.

    Args:
        plans: Iterable of plans (task plans are skipped)
        now: Tracking date
        get_variety: Callable (crop_id, variety_id) -> CropVariety | None
        filters: ProgressFilter

    Returns:
        List of (plan, progress, stage) tuples in input order.
    """
    current = parse_date(now)
    if current is None:
        return []

    rows = []
    for plan in plans:
        if not isinstance(plan, SowingPlan):
            continue
        sowing = parse_date(plan.sowing_date)
        if sowing is None or sowing > current:
            continue

        variety = get_variety(plan.crop_id, plan.variety_id)
        progress = calculate_progress(now, plan, variety)
        stage = get_stage(progress, plan.status, plan.harvest_date)
        if matches_filter(plan, stage, variety, filters):
            rows.append((plan, progress, stage))
    return rows


def stage_counts(rows):
    """Count (plan, progress, stage) rows per stage, in display order."""
    counts = OrderedDict((stage, 0) for stage in ALL_STAGES)
    for _, _, stage in rows:
        counts[stage] = counts.get(stage, 0) + 1
    return counts


def plans_in_month(plans, year, month):
    """Plans whose anchor date (sowing or start date) falls in year/month."""
    selected = []
    for plan in plans:
        anchor = parse_date(plan.anchor_date)
        if anchor is not None and anchor.year == year and anchor.month == month:
            selected.append(plan)
    return selected


def filter_by_type(plans, plan_type='all'):
    """Keep 'all' plans, only 'sowing' plans, or only 'task' plans."""
    if plan_type == PLAN_TYPE_SOWING:
        return [p for p in plans if isinstance(p, SowingPlan)]
    if plan_type == PLAN_TYPE_TASK:
        return [p for p in plans if isinstance(p, TaskPlan)]
    return list(plans)
