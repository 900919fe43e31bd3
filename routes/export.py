"""
routes/export.py — Excel export route.

Provides:
- GET /export/schedule — Download every plan's expanded schedule as Excel
"""

from flask import Blueprint, jsonify, send_file, current_app

from database import get_setting
from routes.plans import get_service
from utils.export import generate_schedule_excel

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/schedule')
def export_schedule():
    """Export all plans as a two-sheet Excel workbook."""
    service = get_service()
    date_format = get_setting('date_format', 'dd/MM/yyyy', db_path=current_app.config['DATABASE'])

    buffer, filename = generate_schedule_excel(service.list_plans(), service.get_variety, date_format)
    if not buffer:
        return jsonify({'error': "Nothing to export."}), 404

    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
