# Overview: Flask API routes for customers; search, detail and LINE registration.

from flask import Blueprint, jsonify, request

from ..http_errors import not_found, server_error, validation_error
from ..services import customer_service
from ..validation import NotFoundError, ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    """?q= matches name, phone, id_card or line_id. Each row carries its segments."""
    try:
        return jsonify(customer_service.list_customers(request.args.get("q")))
    except Exception as e:
        return server_error("list customers", e)


@customers_bp.post("/line-register")
def line_register_route():
    """
    Request body:
    {"line_user_id": "U...", "phone": "0812345678", "storage_code": "A-001", "consent": true}
    """
    data = request.get_json(silent=True) or {}
    try:
        result = customer_service.register_line_user(
            line_user_id=data.get("line_user_id"),
            phone=data.get("phone"),
            storage_code=data.get("storage_code"),
            consent=data.get("consent"),
        )
        return jsonify(result)
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("register LINE user", e)


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        return jsonify(customer_service.customer_detail(customer_id))
    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        return server_error("load customer", e)
