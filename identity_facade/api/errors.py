"""Error handlers for the application. Every response is JSON."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from identity_facade.core.errors import FacadeError


def _envelope(error: str, message: str) -> dict:
    return {"isSuccess": False, "error": error, "message": message}


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(FacadeError)
    def handle_facade_error(error):
        """Typed outcomes raised by the orchestrators."""
        if error.status >= 500:
            app.logger.error(f"{error.code}: {error.detail}", exc_info=error)
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(_envelope("not_found", "Resource not found")), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(_envelope("method_not_allowed", "Method not allowed")), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return jsonify(_envelope(error.name.lower().replace(" ", "_"), error.description)), error.code

        # ALWAYS log the full error - response stays generic
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify(_envelope("internal_error", "An unexpected error occurred")), 500
