from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth, require_admin
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily-sales")
@require_auth
@require_admin
def daily_sales_report():
    try:
        report = reporting_service.daily_sales_and_profit(
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/top-products")
@require_auth
@require_admin
def top_products_report():
    try:
        rows = reporting_service.top_selling_products(
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
            limit=request.args.get("limit", default=5, type=int),
        )
        return jsonify({"items": rows, "count": len(rows)}), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/summary")
@require_auth
def summary_report():
    return jsonify(reporting_service.summary()), 200


@reports_bp.get("/sales.csv")
@require_auth
@require_admin
def sales_csv_export():
    try:
        body = reporting_service.sales_csv(
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400

    response = current_app.response_class(body, mimetype="text/csv")
    response.headers["Content-Disposition"] = "attachment; filename=sales.csv"
    return response
