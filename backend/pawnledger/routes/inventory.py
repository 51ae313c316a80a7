# Overview: Flask API routes for stock items; parses input and returns JSON responses.

"""
Inventory Routes

Direct stock only: items that came in on consignment are sold through
/api/consignments/<id>/sell.
"""

from flask import Blueprint, jsonify, request

from ..http_errors import not_found, server_error, validation_error
from ..services import inventory_service
from ..validation import NotFoundError, ValidationError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
def list_inventory_route():
    """?status=IN_STOCK|SOLD"""
    status = (request.args.get("status") or "").strip().upper() or None
    try:
        items = inventory_service.list_items(status=status)
        return jsonify([i.to_dict() for i in items])
    except Exception as e:
        return server_error("list inventory", e)


@inventory_bp.post("")
def intake_route():
    """
    Buy goods into stock.

    Request body:
    {
        "name": "...",            // required
        "quantity": 1,
        "unit_price": 500,        // or purchase_total
        "purchase_total": 1000,
        "target_price": 1500,
        "source_type": "PURCHASE",
        "seller_name": "...",
        "serial", "condition", "accessories", "storage_location"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.intake_item(data)
        return jsonify(item.to_dict()), 201
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("buy in item", e)


@inventory_bp.post("/bulk-sell")
def bulk_sell_route():
    """
    Request body:
    {
        "items": [{"id": 1, "quantity": 1, "selling_price": 1500}, ...],
        "buyer": {"name", "phone", "address", "tax_id", "id_card"}
    }

    All lines sell or none do; a failing line is reported with its item_id.
    """
    data = request.get_json(silent=True) or {}
    try:
        items = inventory_service.bulk_sell(data)
        return jsonify({"ok": True, "items": [i.to_dict() for i in items]})
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("bulk sell items", e)


@inventory_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        return jsonify(inventory_service.get_item(item_id).to_dict())
    except NotFoundError as e:
        return not_found(e)


@inventory_bp.post("/<int:item_id>/sell")
def sell_item_route(item_id: int):
    """Body: {"selling_price": 1500, "quantity": 1, "buyer": {...}}"""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.sell_item(item_id, data)
        return jsonify(item.to_dict())
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("sell item", e)
