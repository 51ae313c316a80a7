# Overview: JSON error bodies shared by the API routes.

from flask import current_app, jsonify

from .extensions import db
from .validation import NotFoundError, ValidationError


def validation_error(e: ValidationError):
    return jsonify({"message": str(e), **e.details}), 400


def not_found(e: NotFoundError):
    return jsonify({"message": str(e), **getattr(e, "details", {})}), 404


def server_error(action: str, e: Exception):
    """Roll back, log with traceback, and surface the raw error."""
    db.session.rollback()
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"message": f"Failed to {action}", "error": str(e)}), 500
