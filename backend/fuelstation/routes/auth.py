# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

There is no self sign-up: accounts are created by an admin
(POST /api/admin/users) or from the CLI (flask users create).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, bearer_token
from ..errors import WorkflowError, error_response
from ..services import auth_service
from ..services import session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be sent as `Authorization: Bearer <token>` on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required", "code": "validation_error"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s", auth_service.normalize_email(email))
            return jsonify({"error": "Invalid credentials", "code": "invalid_credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        actor = auth_service.actor_for(user)

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(actor.permissions),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except WorkflowError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token(), reason="User logout")
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(g.actor.permissions),
    })


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Replace the caller's password.

    The session making this call stays valid; every other session of the
    user is revoked.
    """
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_password(
            current_password=data.get("current_password"),
            new_password=data.get("new_password"),
            actor=g.actor,
            keep_session_id=g.session_context.session.id,
        )
    except WorkflowError as e:
        return error_response(e)
    return jsonify({"message": "Password changed"})
