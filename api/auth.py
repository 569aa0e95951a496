"""
Authentication blueprint:
- POST /auth/signup
- POST /auth/login
- POST /auth/refresh
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs, separate secrets)
- Stores refresh tokens in DB (RefreshToken model); each one can be rotated exactly once
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.token import RefreshSchema, TokenPairOutSchema
from models.schemas.user import SignupSchema, LoginSchema, UserOutSchema
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
token_pair_out_schema = TokenPairOutSchema()
user_out_schema = UserOutSchema()


def _auth_service():
    return current_app.extensions["auth_tokens"].auth


def _tokens_response(pair, message: str):
    body = token_pair_out_schema.dump(pair)
    body["message"] = message
    return jsonify(body), 200


@bp.post("/signup")
def signup():
    """
    Create an account and return a token pair.
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
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: Account created (returns tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = signup_schema.load(payload)
    pair = _auth_service().signup(data["name"], data["email"], data["password"])
    return _tokens_response(pair, "Account created successfully")


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
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
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    pair = _auth_service().login(data["email"], data["password"])
    return _tokens_response(pair, "Tokens created successfully")


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation).
    The presented refresh token is consumed and cannot be used again.
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
           required: [refresh_token]
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid or expired refresh token
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)
    pair = _auth_service().refresh(data["refresh_token"])
    return _tokens_response(pair, "Tokens refreshed successfully")


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200
