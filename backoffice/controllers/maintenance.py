from flask import Blueprint, jsonify, request

from ..services.common import page_args
from ..services.maintenance_service import MaintenanceService
from ..utils.decorators import current_user, permission_required

bp = Blueprint("maintenance", __name__, url_prefix="/api/maintenance")


@bp.get("")
@permission_required("maintenance", "read")
def list_records():
    page, limit = page_args(request.args)
    return jsonify(MaintenanceService.list_records(
        car_id=request.args.get("car_id"),
        status=request.args.get("status"),
        type=request.args.get("type"),
        page=page,
        limit=limit,
    ))


@bp.get("/profiles")
@permission_required("maintenance", "read")
def list_profiles():
    return jsonify({"profiles": MaintenanceService.list_profiles()})


@bp.post("/profiles")
@permission_required("maintenance", "create")
def create_profile():
    data = request.get_json(silent=True) or {}
    profile = MaintenanceService.create_profile(
        name=data.get("name"),
        mileage_threshold=data.get("mileage_threshold"),
        days_threshold=data.get("days_threshold"),
        description=data.get("description"),
    )
    return jsonify({"profile": profile.to_dict()}), 201


@bp.get("/mechanic-view")
@permission_required("maintenance", "read")
def mechanic_view():
    return jsonify(MaintenanceService.mechanic_view())


@bp.get("/<int:record_id>")
@permission_required("maintenance", "read")
def get_record(record_id):
    record = MaintenanceService.get_record(record_id)
    d = record.to_dict()
    d["car"] = record.car.to_dict()
    return jsonify({"record": d})


@bp.post("")
@permission_required("maintenance", "create")
def create_record():
    data = request.get_json(silent=True) or {}
    record = MaintenanceService.create_record(
        current_user(),
        car_id=data.get("car_id"),
        type=data.get("type"),
        description=data.get("description"),
        cost=data.get("cost", 0),
        service_date=data.get("service_date"),
        next_service_date=data.get("next_service_date"),
        mileage_at_service=data.get("mileage_at_service"),
        status=data.get("status"),
        notes=data.get("notes"),
    )
    return jsonify({"record": record.to_dict()}), 201


@bp.route("/<int:record_id>", methods=["PUT", "PATCH"])
@permission_required("maintenance", "update")
def update_record(record_id):
    record = MaintenanceService.update_record(record_id, request.get_json(silent=True) or {})
    return jsonify({"record": record.to_dict()})


@bp.delete("/<int:record_id>")
@permission_required("maintenance", "delete")
def delete_record(record_id):
    MaintenanceService.delete_record(record_id)
    return jsonify({"message": "Maintenance record deleted successfully"})
