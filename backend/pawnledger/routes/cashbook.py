# Overview: Flask API routes for the cashbook; month view and manual entries.

from flask import Blueprint, jsonify, request

from ..http_errors import server_error, validation_error
from ..services import ledger_service
from ..validation import ValidationError


cashbook_bp = Blueprint("cashbook", __name__, url_prefix="/api/cashbook")


@cashbook_bp.get("")
def cashbook_route():
    """
    Entries of one month, oldest first, with a summary.

    Query parameters: year + month, or month=YYYY-MM. Defaults to this month.
    """
    try:
        return jsonify(ledger_service.cashbook_month(
            request.args.get("year"),
            request.args.get("month"),
        ))
    except Exception as e:
        return server_error("load cashbook", e)


@cashbook_bp.post("")
def create_entry_route():
    """Body: {"type": "IN"|"OUT", "category", "amount", "description", "profit"}"""
    data = request.get_json(silent=True) or {}
    try:
        entry = ledger_service.create_manual_entry(data)
        return jsonify(entry.to_dict()), 201
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("create cashbook entry", e)
