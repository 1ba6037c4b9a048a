"""Error handlers for the application. Every error response is JSON."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from bct_backend.core.errors import ServiceError
from bct_backend.core.keycloak import KeycloakError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad Request", "message": error.description}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({"error": "Forbidden", "message": "Insufficient permissions"}), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": error.description}), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error("Internal error: %s", error, exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(ServiceError)
    def service_error(error):
        if error.status >= 500:
            app.logger.error("Service error: %s", error.message, exc_info=True)
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(KeycloakError)
    def keycloak_error(error):
        app.logger.error("Keycloak error: %s", error)
        return jsonify({"error": str(error)}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error("Unhandled exception: %s", error, exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
