"""
routes/tracking.py — Progress tracking view.

Provides:
- GET /tracking/ — Progress and stage of every sown plan as of a date

Query parameters:
- date      — tracking date (YYYY-MM-DD), defaults to today
- stages    — comma-separated stage list, defaults to sowing,growing,harvest-ready
              ("all" selects every stage)
- group_id  — crop group filter (e.g. brassicas)
- crop_id   — crop filter
"""

from datetime import date

from flask import Blueprint, request, jsonify

from models import ProgressFilter, ALL_STAGES, DEFAULT_TRACKED_STAGES
from plan_filters import filter_tracked_plans, stage_counts
from progress import track_plan
from routes.plans import get_service
from utils.dates import parse_date, to_iso

tracking_bp = Blueprint('tracking', __name__, url_prefix='/tracking')


def _parse_stages(value):
    if value is None:
        return set(DEFAULT_TRACKED_STAGES)
    value = value.strip()
    if value == 'all':
        return set(ALL_STAGES)
    return {s.strip() for s in value.split(',') if s.strip()}


@tracking_bp.route('/')
def index():
    """Tracking rows for the selected date and filters."""
    date_arg = request.args.get('date')
    tracking_date = parse_date(date_arg) if date_arg else date.today()
    if tracking_date is None:
        return jsonify({'error': "Invalid tracking date."}), 400

    stages = _parse_stages(request.args.get('stages'))
    unknown = stages - set(ALL_STAGES)
    if unknown:
        return jsonify({'error': f"Unknown stages: {', '.join(sorted(unknown))}"}), 400

    filters = ProgressFilter(
        stages=stages,
        group_id=request.args.get('group_id', '').strip(),
        crop_id=request.args.get('crop_id', '').strip(),
    )

    service = get_service()
    rows = filter_tracked_plans(service.list_plans(), tracking_date, service.get_variety, filters)

    return jsonify({
        'date': to_iso(tracking_date),
        'plans': [
            track_plan(tracking_date, plan, service.variety_for(plan))
            for plan, _, _ in rows
        ],
        'counts': stage_counts(rows),
    })
