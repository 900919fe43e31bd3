"""
frost.py — Frost risk warnings for frost-sensitive plantings.

Frost dates come from the settings (last spring frost, first autumn frost)
and are projected onto the year being viewed. A plan is at risk when its
variety is moderately or highly frost sensitive and it is in the ground
(sown, default harvest not yet reached) on the current date.
"""

from models import SowingPlan
from progress import default_harvest_date
from utils.dates import parse_date, same_day_this_year, to_iso


FROST_SENSITIVE_LEVELS = ('moderate', 'high')


def frost_risk(current, last_spring_frost, first_autumn_frost):
    """
    Work out whether `current` falls in a frost risk period.

    Returns:
        Dict with spring_risk, autumn_risk and the projected frost dates,
        or None if any date is missing or malformed.
    """
    day = parse_date(current)
    if day is None:
        return None
    spring = same_day_this_year(last_spring_frost, day.year)
    autumn = same_day_this_year(first_autumn_frost, day.year)
    if spring is None or autumn is None:
        return None

    return {
        'spring_risk': day <= spring,
        'autumn_risk': day >= autumn,
        'last_spring_frost': to_iso(spring),
        'first_autumn_frost': to_iso(autumn),
    }


def is_frost_date(day, last_spring_frost, first_autumn_frost):
    """True if `day` is the (year-projected) spring or autumn frost date."""
    current = parse_date(day)
    if current is None:
        return False
    return current in (
        same_day_this_year(last_spring_frost, current.year),
        same_day_this_year(first_autumn_frost, current.year),
    )


def frost_sensitive_plans(plans, get_variety, current):
    """Sowing plans with a frost-sensitive variety growing on `current`."""
    day = parse_date(current)
    if day is None:
        return []

    at_risk = []
    for plan in plans:
        if not isinstance(plan, SowingPlan):
            continue
        variety = get_variety(plan.crop_id, plan.variety_id)
        if variety is None or variety.frost_sensitivity not in FROST_SENSITIVE_LEVELS:
            continue
        sowing = parse_date(plan.sowing_date)
        harvest = default_harvest_date(plan, variety)
        if sowing is None or harvest is None:
            continue
        if sowing <= day <= harvest:
            at_risk.append((plan, variety))
    return at_risk


def frost_warnings(plans, get_variety, current, last_spring_frost, first_autumn_frost):
    """
    Build the frost warning payload for the calendar view.

    Returns:
        Dict with the risk flags and the affected plans, or None when
        there is no risk period or nothing sensitive is growing.
    """
    risk = frost_risk(current, last_spring_frost, first_autumn_frost)
    if risk is None or not (risk['spring_risk'] or risk['autumn_risk']):
        return None

    at_risk = frost_sensitive_plans(plans, get_variety, current)
    if not at_risk:
        return None

    risk['plans'] = [
        {
            'plan_id': plan.id,
            'variety_name': variety.name,
            'frost_sensitivity': variety.frost_sensitivity,
        }
        for plan, variety in at_risk
    ]
    return risk
