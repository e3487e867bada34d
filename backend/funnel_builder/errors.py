from flask import jsonify
from werkzeug.exceptions import HTTPException
from funnel_builder.domain.invariants.exceptions import InvariantViolation

def register_error_handlers(app):
    @app.errorhandler(InvariantViolation)
    def handle_invariant_violation(error):
        response = jsonify({
            "error": "InvariantViolation",
            "message": str(error)
        })
        response.status_code = 400
        return response

    # Illegal lifecycle transitions
    @app.errorhandler(ValueError)
    def handle_value_error(error):
        app.logger.info("Rejected request: %s", error)
        response = jsonify({
            "error": "Conflict",
            "message": str(error)
        })
        response.status_code = 409
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        response = jsonify({
            "error": error.name,
            "message": error.description
        })
        response.status_code = error.code
        return response
