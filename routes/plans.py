"""
routes/plans.py — Plan creation, editing, deletion and status routes.

Provides:
- GET  /plans/                       — JSON list (filters: type, month=YYYY-MM)
- POST /plans/sowing                 — Create a sowing plan
- POST /plans/task                   — Create a task plan
- GET  /plans/<id>                   — One plan
- GET  /plans/<id>/generations       — Expanded successions / occurrences
- POST /plans/<id>/edit              — Change date, interval, count, notes
- POST /plans/<id>/delete            — Delete a plan
- POST /plans/<id>/damage            — Report damage (extends harvest estimate)
- POST /plans/<id>/loss              — Report crop loss
- POST /plans/<id>/harvest-estimate  — Overwrite the harvest estimate
- POST /plans/<id>/harvest           — Mark as harvested

Request bodies may be JSON or form-encoded. Validation errors answer 400,
unknown plans 404. A save failure after a successful change answers 200 with
a "warning" key: the change is kept in memory.
"""

from dataclasses import asdict

from flask import Blueprint, request, jsonify, current_app, abort

from models import plan_to_dict
from plan_filters import plans_in_month, filter_by_type


plans_bp = Blueprint('plans', __name__, url_prefix='/plans')

NOT_FOUND = "Plan not found."


# ========================================
# Helpers
# ========================================

def get_service():
    """The PlanningService created by create_app()."""
    return current_app.extensions['planning']


def request_data():
    """Merged request payload: JSON body if present, else form fields.

    A JSON body that is not an object aborts the request with a 400.
    """
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            abort(400, description="Request body must be a JSON object.")
        return data
    return request.form.to_dict()


def as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'on', 'yes')


def plan_response(plan, error, status=200):
    """Build the JSON answer of a create/update/transition call."""
    if plan is None:
        code = 404 if error == NOT_FOUND else 400
        return jsonify({'error': error}), code
    body = {'plan': plan_to_dict(plan)}
    if error:
        body['warning'] = error
    return jsonify(body), status


def parse_month(value):
    """'YYYY-MM' → (year, month), or None."""
    try:
        year, month = value.split('-')
        year, month = int(year), int(month)
    except (AttributeError, ValueError):
        return None
    if not 1 <= month <= 12:
        return None
    return year, month


# ========================================
# Listing
# ========================================

@plans_bp.route('/')
def list_plans():
    """Saved plans list, optionally narrowed to one month and one type."""
    plans = get_service().list_plans()

    month_arg = request.args.get('month', '').strip()
    if month_arg:
        month = parse_month(month_arg)
        if month is None:
            return jsonify({'error': "Month must be formatted as YYYY-MM."}), 400
        plans = plans_in_month(plans, *month)

    plans = filter_by_type(plans, request.args.get('type', 'all'))
    return jsonify([plan_to_dict(p) for p in plans])


@plans_bp.route('/<plan_id>')
def get_plan(plan_id):
    plan = get_service().get_plan(plan_id)
    if plan is None:
        return jsonify({'error': NOT_FOUND}), 404
    return jsonify(plan_to_dict(plan))


@plans_bp.route('/<plan_id>/generations')
def plan_generations(plan_id):
    """Expanded generations (sowing plans) or occurrences (task plans)."""
    service = get_service()
    if service.get_plan(plan_id) is None:
        return jsonify({'error': NOT_FOUND}), 404

    expanded = service.expand(plan_id)
    if expanded is None:
        return jsonify({'error': "Schedule unavailable for this plan.", 'generations': None}), 200
    return jsonify({'generations': [asdict(item) for item in expanded]})


# ========================================
# Creation / editing
# ========================================

@plans_bp.route('/sowing', methods=['POST'])
def create_sowing_plan():
    data = request_data()
    plan, error = get_service().add_sowing_plan(
        crop_id=data.get('crop_id', ''),
        variety_id=data.get('variety_id', ''),
        date=data.get('sowing_date') or data.get('date'),
        succession_interval=data.get('succession_interval', 14),
        succession_count=data.get('succession_count', 1),
        skip_sowing_date=as_bool(data.get('skip_sowing_date', False)),
        notes=data.get('notes'),
    )
    return plan_response(plan, error, status=201)


@plans_bp.route('/task', methods=['POST'])
def create_task_plan():
    data = request_data()
    plan, error = get_service().add_task_plan(
        task_name=data.get('task_name', ''),
        start_date=data.get('start_date'),
        succession_interval=data.get('succession_interval', 30),
        succession_count=data.get('succession_count', 1),
        task_id=data.get('task_id', ''),
        task_description=data.get('task_description', ''),
        notes=data.get('notes'),
    )
    return plan_response(plan, error, status=201)


@plans_bp.route('/<plan_id>/edit', methods=['POST'])
def edit_plan(plan_id):
    data = request_data()
    plan, error = get_service().update_plan(
        plan_id,
        anchor_date=data.get('date'),
        succession_interval=data.get('succession_interval'),
        succession_count=data.get('succession_count'),
        notes=data.get('notes'),
    )
    return plan_response(plan, error)


@plans_bp.route('/<plan_id>/delete', methods=['POST'])
def delete_plan(plan_id):
    deleted, error = get_service().delete_plan(plan_id)
    if not deleted:
        return jsonify({'error': error}), 404
    body = {'deleted': plan_id}
    if error:
        body['warning'] = error
    return jsonify(body)


# ========================================
# Status updates
# ========================================

@plans_bp.route('/<plan_id>/damage', methods=['POST'])
def report_damage(plan_id):
    data = request_data()
    plan, error = get_service().report_damage(
        plan_id,
        report_date=data.get('report_date'),
        damage_type=data.get('damage_type', 'other'),
        notes=data.get('notes', ''),
    )
    return plan_response(plan, error)


@plans_bp.route('/<plan_id>/loss', methods=['POST'])
def report_loss(plan_id):
    data = request_data()
    plan, error = get_service().report_loss(
        plan_id,
        report_date=data.get('report_date'),
        loss_type=data.get('loss_type', 'other'),
        notes=data.get('notes', ''),
    )
    return plan_response(plan, error)


@plans_bp.route('/<plan_id>/harvest-estimate', methods=['POST'])
def update_harvest_estimate(plan_id):
    data = request_data()
    plan, error = get_service().update_harvest_estimate(plan_id, data.get('estimated_harvest_date'))
    return plan_response(plan, error)


@plans_bp.route('/<plan_id>/harvest', methods=['POST'])
def mark_harvested(plan_id):
    data = request_data()
    plan, error = get_service().mark_harvested(plan_id, data.get('harvest_date'))
    return plan_response(plan, error)
