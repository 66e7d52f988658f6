"""
Error Handlers

This module registers the JSON error handlers used by every blueprint.
"""

import logging
from flask import jsonify
from .errors import APIError

logger = logging.getLogger(__name__)


def error_response(message, status_code, code):
    """Build a JSON error body with the given status"""
    return jsonify({'success': False, 'error': message, 'code': code}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(APIError)
    def handle_api_error(error):
        from ..models import db
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Resource not found', 404, 'NOT_FOUND')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', 405, 'METHOD_NOT_ALLOWED')

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        logger.error(f"Unhandled server error: {error}")
        return error_response('Internal server error. Please try again later.', 500, 'INTERNAL_SERVER_ERROR')
