from flask import Blueprint, jsonify, request

from ..services.common import page_args
from ..services.transaction_service import TransactionService
from ..utils.decorators import current_user, permission_required

bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@bp.get("")
@permission_required("transactions", "read")
def list_transactions():
    page, limit = page_args(request.args)
    return jsonify(TransactionService.list_transactions(
        type=request.args.get("type"),
        category=request.args.get("category"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        page=page,
        limit=limit,
    ))


@bp.get("/<int:transaction_id>")
@permission_required("transactions", "read")
def get_transaction(transaction_id):
    return jsonify({"transaction": TransactionService.get_transaction(transaction_id).to_dict()})


@bp.post("")
@permission_required("transactions", "create")
def create_transaction():
    data = request.get_json(silent=True) or {}
    tx = TransactionService.create_transaction(
        current_user(),
        type=data.get("type"),
        amount=data.get("amount"),
        booking_id=data.get("booking_id"),
        category=data.get("category"),
        description=data.get("description"),
        payment_method=data.get("payment_method"),
        transaction_date=data.get("transaction_date"),
    )
    return jsonify({"transaction": tx.to_dict()}), 201


@bp.put("/<int:transaction_id>")
@permission_required("transactions", "update")
def update_transaction(transaction_id):
    tx = TransactionService.update_transaction(transaction_id, request.get_json(silent=True) or {})
    return jsonify({"transaction": tx.to_dict()})


@bp.delete("/<int:transaction_id>")
@permission_required("transactions", "delete")
def delete_transaction(transaction_id):
    TransactionService.delete_transaction(transaction_id)
    return jsonify({"message": "Transaction deleted successfully"})
