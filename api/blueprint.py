from flask import Blueprint, jsonify

from api.api_v1.blueprint import create_api_v1_blueprint
from api.schemas.api_responses import ok


def create_api_blueprint() -> Blueprint:
    """Create the main API blueprint.

    Keep this as the single registration point to avoid double-registering routes.
    """
    api_bp = Blueprint("api", __name__)

    @api_bp.route("/healthz", methods=["GET"])
    def healthz():
        return jsonify(ok({"status": "ok"}))

    # Versioned API
    api_bp.register_blueprint(create_api_v1_blueprint())

    return api_bp
