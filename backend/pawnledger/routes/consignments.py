# Overview: Flask API routes for consignment contracts; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..http_errors import not_found, server_error, validation_error
from ..services import consignment_service
from ..validation import NotFoundError, ValidationError


consignments_bp = Blueprint("consignments", __name__, url_prefix="/api/consignments")


@consignments_bp.get("")
def list_consignments_route():
    """
    Query parameters:
    - only_open: 1 (default) lists ACTIVE consignments, 0 lists all
    """
    only_open = request.args.get("only_open", "1").strip().lower() not in ("0", "false", "no")
    try:
        rows = consignment_service.list_consignments(only_open=only_open)
        return jsonify([c.to_dict() for c in rows])
    except Exception as e:
        return server_error("list consignments", e)


@consignments_bp.post("")
def create_consignment_route():
    """
    Request body:
    {
        "seller_name": "...",       // required
        "seller_id_card": "...",
        "seller_phone": "...",
        "seller_address": "...",
        "item_name": "...",         // required
        "serial", "condition", "accessories", "photos": [...],
        "advance_amount": 0,
        "net_to_seller": 900,       // per unit
        "target_price": 1200,
        "quantity": 1
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        con = consignment_service.create_consignment(data)
        return jsonify(con.to_dict()), 201
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("create consignment", e)


@consignments_bp.get("/<int:consignment_id>")
def get_consignment_route(consignment_id: int):
    try:
        return jsonify(consignment_service.get_consignment(consignment_id).to_dict())
    except NotFoundError as e:
        return not_found(e)


@consignments_bp.post("/<int:consignment_id>/sell")
def sell_consignment_route(consignment_id: int):
    """
    Request body:
    {"sale_price": 1100, "quantity": 1, "buyer_name", "buyer_phone", "buyer_id_card", ...}

    400 codes: QTY_EXCEED (with available), PRICE_TOO_LOW (with min_sale_price),
    NO_INVENTORY.
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = consignment_service.sell_consignment(consignment_id, data)
        return jsonify(sale.to_dict())
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("sell consignment", e)
