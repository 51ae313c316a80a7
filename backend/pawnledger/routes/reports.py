# Overview: Flask API routes for admin statistics; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..http_errors import server_error, validation_error
from ..services import reporting_service
from ..validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/admin")


@reports_bp.get("/stats")
def stats_route():
    """
    Query parameters:
    - mode: month | year
    - year: defaults to the current year
    - month: 1-12, month mode only
    """
    try:
        return jsonify(reporting_service.admin_stats(
            mode=request.args.get("mode"),
            year=request.args.get("year"),
            month=request.args.get("month"),
        ))
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("build stats", e)


@reports_bp.get("/stats/series")
def stats_series_route():
    """Month buckets for one year (mode=month only)."""
    try:
        return jsonify(reporting_service.admin_stats_series(
            mode=request.args.get("mode"),
            year=request.args.get("year"),
        ))
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        return server_error("build stats series", e)
