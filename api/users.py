from __future__ import annotations

from flask import Blueprint, jsonify, g, abort, current_app

from models.schemas.user import UserOutSchema
from utils.decorators import jwt_required

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = current_app.extensions["storage"].get_user(g.auth.subject)
    if not user:
        abort(401, description="Invalid token")
    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 200
