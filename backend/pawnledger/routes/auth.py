# Overview: Flask API routes for counter PIN login.

from flask import Blueprint, current_app, jsonify, request

from ..services.auth_service import authenticate_pin


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login():
    """
    Request body: {"pin": "1234"}

    Returns {"role": "ADMIN"|"STAFF"} or 401.
    """
    data = request.get_json(silent=True) or {}
    pin = data.get("pin")
    if pin is None or pin == "":
        return jsonify({"message": "pin is required"}), 400

    try:
        role = authenticate_pin(str(pin))
    except Exception as e:
        current_app.logger.exception("Failed to login by PIN")
        return jsonify({"message": "Failed to login", "error": str(e)}), 500

    if not role:
        current_app.logger.warning("Rejected PIN login from %s", request.remote_addr)
        return jsonify({"message": "Invalid PIN"}), 401
    return jsonify({"role": role})
