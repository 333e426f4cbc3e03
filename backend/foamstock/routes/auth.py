# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Login issues a session token (bearer) and sets the session cookie
- Logout revokes the presented credential
- Self-registration is disabled; the business owner creates accounts
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration is disabled for security.

    Users can only be created by the business owner via:
    - POST /api/users
    - CLI: flask users create
    """
    return jsonify({
        "status": "fail",
        "message": "Self-registration is disabled. Contact the business owner to create an account.",
    }), 403


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"status": "fail", "message": "Please provide email and password"}), 400

    user, session, token = auth_service.login(
        email,
        password,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    response = jsonify({
        "status": "success",
        "token": token,
        "data": {
            "user": user.to_dict(),
            "session": session.to_dict(),
        },
    })
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        httponly=True,
        samesite="Lax",
        secure=not current_app.debug and not current_app.testing,
        max_age=int(session_service.SESSION_ABSOLUTE_TIMEOUT.total_seconds()),
    )
    return response, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.credential.token)
    response = jsonify({"status": "success", "message": "Logged out successfully"})
    response.delete_cookie(current_app.config["AUTH_COOKIE_NAME"])
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"status": "success", "data": {"user": g.current_user.to_dict()}})


@auth_bp.patch("/me")
@require_auth
def update_me_route():
    user = auth_service.update_own_details(g.current_user, request.get_json(silent=True))
    return jsonify({"status": "success", "data": {"user": user.to_dict()}})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.change_password(
        g.current_user,
        data.get("current_password"),
        data.get("new_password"),
    )
    return jsonify({"status": "success", "message": "Password updated successfully"})
