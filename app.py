"""
app.py — Flask entry point for the garden succession planner.

Initializes the Flask app, creates and seeds the database, builds the
PlanningService (SQLite store + variety catalog), loads stored plans and
registers all route blueprints.

Run: python app.py → localhost:5000
"""

import logging
import os

from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect, generate_csrf

from database import init_db, seed_defaults, get_db_path, PlanStore, VarietyCatalog
from planning_service import PlanningService
from routes.plans import plans_bp
from routes.tracking import tracking_bp
from routes.calendar import calendar_bp
from routes.settings import settings_bp
from routes.export import export_bp


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'garden-planner-local-app-secret-key')
    app.config['WTF_CSRF_CHECK_DEFAULT'] = True
    app.config['DATABASE'] = get_db_path()

    if test_config:
        app.config.update(test_config)

    csrf = CSRFProtect(app)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO)

    # Initialize database and seed defaults
    db_path = app.config['DATABASE']
    init_db(db_path)
    seed_defaults(db_path)

    service = PlanningService(PlanStore(db_path), VarietyCatalog(db_path))
    count = service.load()
    app.extensions['planning'] = service
    app.logger.info("Loaded %d plans from %s", count, db_path)

    # Register blueprints
    app.register_blueprint(plans_bp)
    app.register_blueprint(tracking_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(export_bp)

    @app.errorhandler(400)
    def bad_request(error):
        """JSON body for aborted requests (malformed payloads, CSRF failures)."""
        return jsonify({'error': error.description}), 400

    @app.route('/api/csrf-token')
    def csrf_token():
        """Hand the CSRF token to API clients (send it back as X-CSRFToken)."""
        return jsonify({'csrf_token': generate_csrf()})

    @app.route('/')
    def index():
        service = app.extensions['planning']
        return jsonify({
            'plans': len(service.list_plans()),
            'endpoints': [
                '/plans/', '/tracking/', '/calendar/<year>/<month>', '/calendar/<year>/<month>/<day>',
                '/settings/', '/export/schedule',
            ],
        })

    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
