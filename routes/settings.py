"""
routes/settings.py — User settings and variety reference data.

Provides:
- GET  /settings/            — Current settings (date format, frost dates)
- POST /settings/            — Update one or more settings
- GET  /settings/varieties   — Variety catalog (optional ?crop_id=)
"""

from flask import Blueprint, request, jsonify, current_app

from database import get_settings, update_setting
from models import variety_to_dict
from routes.plans import request_data, get_service
from utils.dates import DATE_FORMATS, parse_date, to_iso

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')

FROST_KEYS = ('last_spring_frost', 'first_autumn_frost')


@settings_bp.route('/')
def index():
    """Current settings as JSON."""
    return jsonify(get_settings(db_path=current_app.config['DATABASE']))


@settings_bp.route('/', methods=['POST'])
def save():
    """Validate and store settings. Unknown keys are rejected."""
    data = request_data()
    db_path = current_app.config['DATABASE']

    updates = {}
    for key, value in data.items():
        if key == 'date_format':
            if value not in DATE_FORMATS:
                return jsonify({'error': f"Unsupported date format: {value}"}), 400
            updates[key] = value
        elif key in FROST_KEYS:
            day = parse_date(value)
            if day is None:
                return jsonify({'error': f"Invalid date for {key}."}), 400
            updates[key] = to_iso(day)
        else:
            return jsonify({'error': f"Unknown setting: {key}"}), 400

    for key, value in updates.items():
        update_setting(key, value, db_path=db_path)

    return jsonify(get_settings(db_path=db_path))


@settings_bp.route('/varieties')
def varieties():
    """Variety catalog, optionally for one crop."""
    crop_id = request.args.get('crop_id', '').strip() or None
    rows = get_service().inventory.list_varieties(crop_id)
    return jsonify([variety_to_dict(v) for v in rows])
