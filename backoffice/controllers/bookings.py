from flask import Blueprint, current_app, jsonify, request

from ..services.common import page_args
from ..utils.decorators import current_user, permission_required, token_required

bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _service():
    return current_app.extensions["backoffice"]["bookings"]


@bp.get("")
@permission_required("bookings", "read")
def list_bookings():
    page, limit = page_args(request.args)
    return jsonify(_service().list_bookings(
        status=request.args.get("status"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        page=page,
        limit=limit,
    ))


@bp.get("/<int:booking_id>")
@permission_required("bookings", "read")
def get_booking(booking_id):
    booking = _service().get_booking(booking_id)
    d = booking.to_dict()
    d["transactions"] = [t.to_dict() for t in booking.transactions]
    return jsonify({"booking": d})


@bp.post("/check-availability")
@token_required
def check_availability():
    data = request.get_json(silent=True) or {}
    result = _service().check_availability(
        data.get("car_id"),
        data.get("start_date"),
        data.get("end_date"),
        exclude_booking_id=data.get("exclude_booking_id"),
    )
    return jsonify(result.to_dict())


@bp.post("")
@permission_required("bookings", "create")
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = _service().create_booking(
        current_user(),
        car_id=data.get("car_id"),
        customer_id=data.get("customer_id"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
        daily_rate=data.get("daily_rate"),
        extras=data.get("extras", 0),
        taxes=data.get("taxes", 0),
        discount=data.get("discount", 0),
        notes=data.get("notes"),
    )
    return jsonify({"booking": booking.to_dict()}), 201


@bp.put("/<int:booking_id>")
@permission_required("bookings", "update")
def update_booking(booking_id):
    data = request.get_json(silent=True) or {}
    booking = _service().update_booking(booking_id, data)
    return jsonify({"booking": booking.to_dict()})


@bp.patch("/<int:booking_id>/cancel")
@permission_required("bookings", "update")
def cancel_booking(booking_id):
    booking = _service().cancel_booking(booking_id)
    return jsonify({"booking": booking.to_dict()})


@bp.patch("/<int:booking_id>/pickup")
@permission_required("bookings", "update")
def pickup_booking(booking_id):
    data = request.get_json(silent=True) or {}
    booking = _service().pickup_booking(booking_id, mileage=data.get("mileage"))
    return jsonify({"booking": booking.to_dict()})


@bp.patch("/<int:booking_id>/return")
@permission_required("bookings", "update")
def return_booking(booking_id):
    data = request.get_json(silent=True) or {}
    booking = _service().return_booking(booking_id, mileage=data.get("mileage"))
    return jsonify({"booking": booking.to_dict()})
