# Overview: Flask API routes for deposit contracts; parses input and returns JSON responses.

"""
Deposit contract routes

Lifecycle actions (renew, redeem, cut-principal, forfeit) only apply to ACTIVE
contracts; anything else answers 400 with the current status.

Static paths (fee-quote, next-storage-code) are registered before the
/<int:contract_id> routes.
"""

from flask import Blueprint, current_app, jsonify, request

from ..http_errors import not_found, server_error, validation_error
from ..services import contract_service
from ..services.document_service import next_storage_code
from ..services.fee_service import DEFAULT_TERM_DAYS, calculate_fee, normalize_term_days
from ..services.notification_service import NotificationError
from ..validation import NotFoundError, ValidationError, parse_money


contracts_bp = Blueprint("contracts", __name__, url_prefix="/api/contracts")


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@contracts_bp.get("")
def list_contracts_route():
    """
    Query parameters:
    - status: ACTIVE | RENEWED | REDEEMED | FORFEITED
    - type: contract type (default DEPOSIT)
    """
    try:
        contracts = contract_service.list_contracts(
            status=request.args.get("status") or None,
            contract_type=request.args.get("type") or None,
        )
        return jsonify([c.to_dict() for c in contracts])
    except Exception as e:
        return server_error("list contracts", e)


@contracts_bp.get("/fee-quote")
def fee_quote_route():
    """Fee breakdown for a principal and term, without creating anything."""
    try:
        principal = parse_money(request.args.get("principal", "0"), "principal")
    except ValidationError as e:
        return validation_error(e)

    term_days = normalize_term_days(request.args.get("term_days", DEFAULT_TERM_DAYS, type=int))
    fee = calculate_fee(principal, term_days)
    return jsonify({"principal": float(principal), "term_days": term_days, **fee.to_dict()})


@contracts_bp.get("/next-storage-code")
def next_storage_code_route():
    try:
        return jsonify({"storage_code": next_storage_code()})
    except Exception as e:
        return server_error("preview storage code", e)


@contracts_bp.post("")
def create_contract_route():
    """
    Request body:
    {
        "customer": {"name", "id_card", "phone", "address", "line_id"},
        "asset": {"model_name", "serial", "condition", "accessories", "storage_code"},
        "financial": {"principal", "term_days", "fee_breakdown"},
        "images": ["..."]
    }
    """
    try:
        contract = contract_service.create_contract(_payload())
        return jsonify(contract.to_dict()), 201
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("create contract", e)


@contracts_bp.get("/<int:contract_id>")
def get_contract_route(contract_id: int):
    try:
        return jsonify(contract_service.get_contract(contract_id).to_dict())
    except NotFoundError as e:
        return not_found(e)


@contracts_bp.post("/<int:contract_id>/renew")
def renew_contract_route(contract_id: int):
    try:
        renewed = contract_service.renew_contract(contract_id, _payload())
        return jsonify(renewed.to_dict()), 201
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("renew contract", e)


@contracts_bp.post("/<int:contract_id>/redeem")
def redeem_contract_route(contract_id: int):
    try:
        contract = contract_service.redeem_contract(contract_id, _payload())
        return jsonify(contract.to_dict())
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("redeem contract", e)


@contracts_bp.post("/<int:contract_id>/cut-principal")
def cut_principal_route(contract_id: int):
    """Body: {"cut_amount": 1000} or {"new_principal": 5000}"""
    try:
        contract = contract_service.cut_principal(contract_id, _payload())
        return jsonify(contract.to_dict())
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("cut principal", e)


@contracts_bp.post("/<int:contract_id>/forfeit")
def forfeit_contract_route(contract_id: int):
    try:
        contract, item = contract_service.forfeit_contract(contract_id)
        return jsonify({
            "contract": contract.to_dict(),
            "inventory_item": item.to_dict() if item else None,
        })
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("forfeit contract", e)


@contracts_bp.post("/<int:contract_id>/notify-line")
def notify_line_route(contract_id: int):
    try:
        log = contract_service.notify_customer_line(contract_id)
        return jsonify({"ok": True, "log": log.to_dict()})
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except NotificationError as e:
        current_app.logger.exception("Failed to push LINE reminder for contract %s", contract_id)
        return jsonify({"message": "Failed to send LINE message", "error": str(e)}), 500
    except Exception as e:
        return server_error("notify customer", e)
