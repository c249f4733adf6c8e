from flask import Blueprint, jsonify, request

from ..services.auth_service import AuthService
from ..utils.decorators import current_user, permission_required, token_required

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    return jsonify(AuthService.login(data.get("email"), data.get("password")))


@bp.get("/me")
@token_required
def me():
    user = current_user()
    d = user.to_dict()
    d["permissions"] = sorted(f"{r}:{a}" for r, a in user.role.grants())
    return jsonify({"user": d})


@bp.post("/users")
@permission_required("users", "create")
def create_user():
    """Create a staff account (admins only)."""
    data = request.get_json(silent=True) or {}
    user = AuthService.create_user(
        email=data.get("email"),
        password=data.get("password"),
        full_name=data.get("full_name"),
        role_name=data.get("role"),
        phone=data.get("phone"),
    )
    return jsonify({"user": user.to_dict()}), 201
