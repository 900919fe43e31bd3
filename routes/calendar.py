"""
routes/calendar.py — Month calendar events and frost warnings.

Provides:
- GET /calendar/<year>/<month> — Sowing/transplant/harvest/task markers for
  every day of the month, the month's frost dates and current frost warnings
- GET /calendar/<year>/<month>/<day> — The marker each plan has on one day
"""

import calendar
from datetime import date, MINYEAR, MAXYEAR

from flask import Blueprint, request, jsonify, current_app

from database import get_settings
from frost import frost_warnings, is_frost_date
from routes.plans import get_service
from succession_engine import calendar_events, events_on_date
from utils.dates import format_date, parse_date, to_iso, add_days

calendar_bp = Blueprint('calendar', __name__, url_prefix='/calendar')


@calendar_bp.route('/<int:year>/<int:month>')
def month_view(year, month):
    """Calendar markers for one month."""
    if not MINYEAR <= year <= MAXYEAR:
        return jsonify({'error': f"Year must be between {MINYEAR} and {MAXYEAR}."}), 400
    if not 1 <= month <= 12:
        return jsonify({'error': "Month must be between 1 and 12."}), 400

    settings = get_settings(db_path=current_app.config['DATABASE'])
    date_format = settings.get('date_format', 'dd/MM/yyyy')
    spring = settings.get('last_spring_frost')
    autumn = settings.get('first_autumn_frost')

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    service = get_service()
    plans = service.list_plans()
    events = calendar_events(plans, service.get_variety, first, last)

    frost_days = []
    for offset in range(last.day):
        day = add_days(first, offset)
        if is_frost_date(day, spring, autumn):
            frost_days.append(to_iso(day))

    # Frost warnings are evaluated for the "as of" date (defaults to today)
    as_of = parse_date(request.args.get('date')) or date.today()

    return jsonify({
        'year': year,
        'month': month,
        'events': [
            {
                'plan_id': e.plan_id,
                'date': e.date,
                'display_date': format_date(e.date, date_format),
                'kind': e.kind,
                'generation': e.generation,
                'label': e.label,
            }
            for e in events
        ],
        'frost_dates': frost_days,
        'frost_warnings': frost_warnings(plans, service.get_variety, as_of, spring, autumn),
    })


@calendar_bp.route('/<int:year>/<int:month>/<int:day>')
def day_view(year, month, day):
    """Plans with a sowing, transplant, harvest or task marker on one day."""
    try:
        selected = date(year, month, day)
    except ValueError:
        return jsonify({'error': "Invalid date."}), 400

    service = get_service()
    events = []
    for plan in service.list_plans():
        variety = service.variety_for(plan)
        kind = events_on_date(plan, variety, selected)
        if kind is None:
            continue
        events.append({
            'plan_id': plan.id,
            'kind': kind,
            'label': variety.name if variety is not None else getattr(plan, 'task_name', ''),
        })

    return jsonify({'date': to_iso(selected), 'events': events})
