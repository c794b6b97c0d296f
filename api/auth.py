"""
Authentication blueprint:
- POST /api/v1/auth/register
- POST /api/v1/auth/login
- POST /api/v1/auth/refresh
- POST /api/v1/auth/logout

Tokens travel in headers only, never in the JSON body:
- access token:  `Authorization: Bearer <token>`
- refresh token: `Refresh-Authorization: <token>`
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from models.schemas.user import UserCreateSchema, UserOutSchema, UserLoginSchema
from utils.decorators import (
    HEADER_AUTHORIZATION,
    HEADER_REFRESH_AUTHORIZATION,
    bearer_token,
    get_token_service,
    jwt_required,
)

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()


def token_response(body: dict, status: int, access, refresh):
    response = jsonify(body)
    response.headers[HEADER_AUTHORIZATION] = f"Bearer {access.token_string}"
    response.headers[HEADER_REFRESH_AUTHORIZATION] = refresh.token_string
    return response, status


@bp.post("/register")
def register():
    """
    Register a new user and issue a token pair.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            f_name: { type: string }
            l_name: { type: string }
    responses:
      201:
        description: Created, tokens in Authorization / Refresh-Authorization headers
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    authenticator = current_app.extensions["authenticator"]
    user_id = authenticator.register(
        data["email"], data["password"], f_name=data.get("f_name"), l_name=data.get("l_name")
    )

    access, refresh = get_token_service().issue_pair(user_id, request.user_agent.string)
    user = current_app.extensions["storage"].get_user(user_id)
    return token_response(
        {"message": "Register success", "data": user_out_schema.dump(user)}, 201, access, refresh
    )


@bp.post("/login")
def login():
    """
    Login: issue access and refresh tokens
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK, tokens in Authorization / Refresh-Authorization headers
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    authenticator = current_app.extensions["authenticator"]
    user_id = authenticator.check_credentials(data["email"], data["password"])

    access, refresh = get_token_service().issue_pair(user_id, request.user_agent.string)
    return token_response({"message": "Login success"}, 200, access, refresh)


@bp.post("/refresh")
def refresh():
    """
    Rotate: exchange a refresh token for a new token pair
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      -  in: header
         name: Authorization
         type: string
         required: true
         description: "Bearer <refresh token>"
    responses:
      200:
        description: OK, new tokens in Authorization / Refresh-Authorization headers
      401:
        description: Refresh token invalid, expired or already used
    """
    current = bearer_token()
    if not current:
        abort(401, description="Missing authorization")

    # TokenError subclasses are turned into a plain 401 by the error handlers
    access, new_refresh = get_token_service().rotate(current, request.user_agent.string)
    return token_response({"message": "Refresh success"}, 200, access, new_refresh)


@bp.post("/logout")
@jwt_required(allow_expired=True, allow_revoked=True)
def logout():
    """
    Logout: revoke the access token, its refresh token and sibling access tokens
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out (also when already logged out)
      401:
        description: Unauthorized
    """
    get_token_service().revoke_access(g.auth.access_token, cascade_to_refresh=True)
    return jsonify({"message": "Logout success"}), 200
