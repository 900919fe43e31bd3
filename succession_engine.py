"""
succession_engine.py — Succession expansion for sowing and task plans.

This module implements:
- Generation expansion: one sowing/transplant/harvest triple per succession
- Task occurrence expansion for recurring garden tasks
- Skip-sowing back-dating of the stored anchor date
- Calendar event extraction over a date window

Algorithm details:
- Generation i sowing date = anchor + i * succession_interval days
- Transplant date = generation sowing + days_to_transplant (omitted when 0)
- Harvest date of generation 0 honours the plan overrides:
    harvest_date (actual) > estimated_harvest_date (estimated) > projected
- Generations 1..n-1 always use the projected default: a plan has a single
  override slot shared by all its successions
- skip_sowing_date plans keep the same date arithmetic but hide the sowing
  marker (the seedlings were bought or raised elsewhere)

Expansion is computed on demand and never stored.
"""

from models import (
    SowingPlan, TaskPlan, GenerationEvents, TaskOccurrence, CalendarEvent,
    HARVEST_ACTUAL, HARVEST_ESTIMATED, HARVEST_PROJECTED,
)
from utils.dates import parse_date, add_days, to_iso


EVENT_SOWING = 'sowing'
EVENT_TRANSPLANT = 'transplant'
EVENT_HARVEST = 'harvest'
EVENT_TASK = 'task'

# Order used when several markers fall on the same day
EVENT_PRIORITY = {EVENT_SOWING: 0, EVENT_TRANSPLANT: 1, EVENT_HARVEST: 2, EVENT_TASK: 3}


def back_date_sowing(transplant_date, days_to_transplant):
    """
    Compute the stored sowing date of an already-established transplant.

    Args:
        transplant_date: Date the seedlings go in the ground (date or ISO str)
        days_to_transplant: Variety offset from sowing to transplant

    Returns:
        ISO sowing date, or None if transplant_date is malformed or the
        sowing date would fall before the first representable date.
    """
    day = parse_date(transplant_date)
    if day is None:
        return None
    try:
        return to_iso(add_days(day, -int(days_to_transplant)))
    except OverflowError:
        return None


def _generation_harvest(plan, generation_sowing, variety, index):
    """Return (harvest_date, kind) for one generation."""
    if index == 0:
        actual = parse_date(plan.harvest_date)
        if actual is not None:
            return actual, HARVEST_ACTUAL
        estimated = parse_date(plan.estimated_harvest_date)
        if estimated is not None:
            return estimated, HARVEST_ESTIMATED
    return add_days(generation_sowing, variety.days_to_harvest), HARVEST_PROJECTED


def expand_generations(plan, variety):
    """
    Expand a sowing plan into its succession generations.

    Args:
        plan: SowingPlan
        variety: CropVariety resolved for the plan, or None

    Returns:
        List of GenerationEvents of length succession_count (cut short if
        later generations would fall past the last representable date), or
        None when the variety is unknown or the sowing date cannot be parsed.
    """
    if variety is None:
        return None
    anchor = parse_date(plan.sowing_date)
    if anchor is None:
        return None

    count = max(int(plan.succession_count or 0), 0)
    interval = int(plan.succession_interval or 0)

    generations = []
    for i in range(count):
        try:
            sowing = add_days(anchor, i * interval)

            transplant = None
            if variety.days_to_transplant > 0:
                transplant = add_days(sowing, variety.days_to_transplant)

            harvest, kind = _generation_harvest(plan, sowing, variety, i)
        except OverflowError:
            # Later generations fall past date.max
            break

        generations.append(GenerationEvents(
            index=i,
            sowing_date=to_iso(sowing),
            transplant_date=to_iso(transplant),
            harvest_date=to_iso(harvest),
            harvest_date_kind=kind,
            show_sowing=not plan.skip_sowing_date,
        ))

    return generations


def expand_task_occurrences(plan):
    """
    Expand a task plan into its dated occurrences.

    Returns:
        List of TaskOccurrence (cut short past the last representable
        date), or None if the start date is malformed.
    """
    anchor = parse_date(plan.start_date)
    if anchor is None:
        return None

    count = max(int(plan.succession_count or 0), 0)
    interval = int(plan.succession_interval or 0)

    occurrences = []
    for i in range(count):
        try:
            day = add_days(anchor, i * interval)
        except OverflowError:
            break
        occurrences.append(TaskOccurrence(index=i, date=to_iso(day)))
    return occurrences


def expand_plan(plan, variety=None):
    """Expand either plan variant. Unsupported objects give None."""
    if isinstance(plan, SowingPlan):
        return expand_generations(plan, variety)
    if isinstance(plan, TaskPlan):
        return expand_task_occurrences(plan)
    return None


def _plan_markers(plan, variety):
    """Yield (date_iso, kind, generation) for every marker of a plan."""
    if isinstance(plan, SowingPlan):
        for gen in expand_generations(plan, variety) or []:
            if gen.show_sowing:
                yield gen.sowing_date, EVENT_SOWING, gen.index
            if gen.transplant_date:
                yield gen.transplant_date, EVENT_TRANSPLANT, gen.index
            yield gen.harvest_date, EVENT_HARVEST, gen.index
    elif isinstance(plan, TaskPlan):
        for occ in expand_task_occurrences(plan) or []:
            yield occ.date, EVENT_TASK, occ.index


def events_on_date(plan, variety, day):
    """
    Return the kind of the first marker a plan has on `day`.

    Generations are scanned in order; within a generation sowing wins over
    transplant, and transplant over harvest.

    Returns:
        'sowing', 'transplant', 'harvest', 'task' or None.
    """
    target = to_iso(parse_date(day))
    if target is None:
        return None
    for marker_date, kind, _ in _plan_markers(plan, variety):
        if marker_date == target:
            return kind
    return None


def calendar_events(plans, get_variety, start, end):
    """
    Collect every marker of `plans` falling within [start, end].

    Args:
        plans: Iterable of SowingPlan / TaskPlan
        get_variety: Callable (crop_id, variety_id) -> CropVariety | None
        start, end: Window bounds (inclusive), date or ISO string

    Returns:
        List of CalendarEvent ordered by date, marker kind, then plan id.
        Sowing plans with an unknown variety contribute no events.
    """
    first = parse_date(start)
    last = parse_date(end)
    if first is None or last is None:
        return []
    first_iso, last_iso = to_iso(first), to_iso(last)

    events = []
    for plan in plans:
        variety = None
        label = ''
        if isinstance(plan, SowingPlan):
            variety = get_variety(plan.crop_id, plan.variety_id)
            if variety is None:
                continue
            label = variety.name
        elif isinstance(plan, TaskPlan):
            label = plan.task_name
        else:
            continue

        for marker_date, kind, generation in _plan_markers(plan, variety):
            if first_iso <= marker_date <= last_iso:
                events.append(CalendarEvent(
                    plan_id=plan.id,
                    date=marker_date,
                    kind=kind,
                    generation=generation,
                    label=label,
                ))

    events.sort(key=lambda e: (e.date, EVENT_PRIORITY.get(e.kind, 9), e.plan_id, e.generation))
    return events
