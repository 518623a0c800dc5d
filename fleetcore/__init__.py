"""
FleetCore - Flask Application Factory
Fleet inspection checklists and defect-driven work orders
"""
import logging
import os

from flask import Flask, session, request, jsonify

from fleetcore.config import config
from fleetcore.exceptions import NotFoundError, ValidationError, DownstreamSynthesisError
from fleetcore.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(config_name=None, test_config=None):
    app = Flask(__name__)

    # Configuration
    config_name = config_name or os.getenv('APP_ENV', 'development')
    app.config.from_object(config.get(config_name, config['default']))
    if test_config:
        app.config.update(test_config)

    configure_logging(app)

    # Initialize store
    from fleetcore.services.db import init_db
    with app.app_context():
        init_db(app)

    # Register blueprints
    from fleetcore.routes.vehicles import vehicles_bp
    from fleetcore.routes.inspection import inspection_bp
    from fleetcore.routes.work_orders import work_orders_bp

    app.register_blueprint(vehicles_bp)
    app.register_blueprint(inspection_bp)
    app.register_blueprint(work_orders_bp)

    _register_error_handlers(app)

    from fleetcore.auth import require_auth

    # Home route
    @app.route('/')
    @require_auth
    def home():
        """Dashboard counters."""
        from fleetcore.services.inspection_service import get_dashboard_stats
        return jsonify(get_dashboard_stats())

    @app.route('/notifications')
    @require_auth
    def notifications():
        from fleetcore.services.notification_service import list_notifications
        unread_only = request.args.get('unread') == '1'
        items = list_notifications(unread_only=unread_only)
        return jsonify({'notifications': items, 'total': len(items)})

    @app.route('/notifications/<notification_id>/read', methods=['POST'])
    @require_auth
    def read_notification(notification_id):
        from fleetcore.services.notification_service import mark_read
        return jsonify(mark_read(notification_id))

    @app.route('/settings', methods=['GET', 'POST'])
    @require_auth
    def settings():
        """Notification preferences; POST requires manager."""
        from dataclasses import asdict
        from fleetcore.auth import get_role_level
        from fleetcore.config import resolve_settings, save_settings

        if request.method == 'POST':
            if get_role_level(session.get('role')) < get_role_level('manager'):
                return jsonify({'error': 'manager role required'}), 403
            payload = request.get_json(silent=True)
            if not isinstance(payload, dict):
                raise ValidationError('Settings must be sent as a JSON object')
            current = save_settings(**payload)
        else:
            current = resolve_settings()
        return jsonify(asdict(current))

    # Simple auth (magic link style)
    @app.route('/login', methods=['GET', 'POST'])
    def login():
        """Login via magic link parameter or posted code."""
        if request.method == 'POST':
            user_code = (request.get_json(silent=True) or request.form).get('code', '').strip()
        else:
            user_code = request.args.get('u')

        if not user_code:
            return jsonify({'error': 'Login code required'}), 400

        from fleetcore.auth import get_technician
        try:
            user = get_technician(user_code)
        except NotFoundError:
            user = None

        if not user or not user['active']:
            return jsonify({'error': 'Invalid login code. Please try again.'}), 401

        session['user_id'] = user['id']
        session['user_name'] = user['name']
        session['role'] = user['role']
        return jsonify({'user': user})

    @app.route('/logout')
    def logout():
        """Clear session."""
        session.clear()
        return '', 204

    return app


def _register_error_handlers(app):

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return jsonify({'error': str(error)}), 404

    @app.errorhandler(ValidationError)
    def _handle_validation(error):
        return jsonify({'error': str(error), 'details': error.details}), 422

    @app.errorhandler(DownstreamSynthesisError)
    def _handle_downstream(error):
        logger.warning('Downstream failure: %s', error,
                       extra={'inspection_id': error.inspection_id})
        return jsonify({'error': str(error), 'retry': True}), 503

    @app.errorhandler(Exception)
    def _handle_unexpected(error):
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException):
            return error
        logger.exception('Unexpected error endpoint=%s', request.endpoint)
        return jsonify({'error': 'Internal server error'}), 500


# For direct execution
if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=5000)
