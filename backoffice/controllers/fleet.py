from flask import Blueprint, jsonify, request

from ..services.common import page_args
from ..services.fleet_service import FleetService
from ..utils.decorators import permission_required

bp = Blueprint("fleet", __name__, url_prefix="/api")


# ---------------- Cars ----------------
@bp.get("/cars")
@permission_required("cars", "read")
def list_cars():
    page, limit = page_args(request.args)
    return jsonify(FleetService.list_cars(
        status=request.args.get("status"),
        category=request.args.get("category"),
        search=request.args.get("search"),
        page=page,
        limit=limit,
    ))


@bp.get("/cars/<int:car_id>")
@permission_required("cars", "read")
def get_car(car_id):
    car = FleetService.get_car(car_id)
    d = car.to_dict()
    d["maintenance_profile"] = car.maintenance_profile.to_dict() if car.maintenance_profile else None
    d["maintenance_records"] = [r.to_dict() for r in car.maintenance_records[:10]]
    return jsonify({"car": d})


@bp.post("/cars")
@permission_required("cars", "create")
def create_car():
    car = FleetService.create_car(request.get_json(silent=True) or {})
    return jsonify({"car": car.to_dict()}), 201


@bp.put("/cars/<int:car_id>")
@permission_required("cars", "update")
def update_car(car_id):
    car = FleetService.update_car(car_id, request.get_json(silent=True) or {})
    return jsonify({"car": car.to_dict()})


@bp.delete("/cars/<int:car_id>")
@permission_required("cars", "delete")
def delete_car(car_id):
    FleetService.delete_car(car_id)
    return jsonify({"message": "Car deleted successfully"})


# ---------------- Customers ----------------
@bp.get("/customers")
@permission_required("customers", "read")
def list_customers():
    page, limit = page_args(request.args)
    return jsonify(FleetService.list_customers(search=request.args.get("search"), page=page, limit=limit))


@bp.get("/customers/<int:customer_id>")
@permission_required("customers", "read")
def get_customer(customer_id):
    customer = FleetService.get_customer(customer_id)
    d = customer.to_dict()
    d["bookings"] = [b.to_dict(with_relations=False) for b in customer.bookings]
    return jsonify({"customer": d})


@bp.post("/customers")
@permission_required("customers", "create")
def create_customer():
    customer = FleetService.create_customer(request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()}), 201


@bp.put("/customers/<int:customer_id>")
@permission_required("customers", "update")
def update_customer(customer_id):
    customer = FleetService.update_customer(customer_id, request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()})


@bp.delete("/customers/<int:customer_id>")
@permission_required("customers", "delete")
def delete_customer(customer_id):
    FleetService.delete_customer(customer_id)
    return jsonify({"message": "Customer deleted successfully"})
