from flask import Blueprint, jsonify, request

from ..services.report_service import ReportService
from ..utils.decorators import permission_required

bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@bp.get("/dashboard")
@permission_required("reports", "read")
def dashboard():
    return jsonify({"stats": ReportService.dashboard()})


@bp.get("/revenue")
@permission_required("reports", "read")
def revenue():
    return jsonify(ReportService.revenue(request.args.get("start_date"), request.args.get("end_date")))


@bp.get("/fleet-utilization")
@permission_required("reports", "read")
def fleet_utilization():
    return jsonify({"cars": ReportService.fleet_utilization()})
