from flask import current_app, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from fair.extensions import db
from fair.models import Admin
from fair.routes.payload import json_body, text_field
from fair.services.security import (
    generate_reset_token,
    send_reset_email,
    verify_reset_token,
)


def register_auth_routes(app):
    @app.route("/api/v1/admin/auth/login", methods=["POST"])
    def login():
        data = json_body()
        username = text_field(data, "username")
        password = text_field(data, "password", strip=False)
        remember = bool(data.get("remember"))

        admin = Admin.query.filter_by(username=username).first()
        if not admin or not check_password_hash(admin.password_hash, password):
            current_app.logger.warning("Failed admin login for %s", username)
            return {"ok": False, "error": "Invalid username or password."}, 401

        login_user(admin, remember=remember)
        return {
            "ok": True,
            "admin": {
                "id": admin.id,
                "username": admin.username,
                "email": admin.email,
                "role": admin.role,
            },
        }

    @app.route("/api/v1/admin/auth/me")
    @login_required
    def current_admin():
        return {
            "ok": True,
            "admin": {
                "id": current_user.id,
                "username": current_user.username,
                "email": current_user.email,
                "role": current_user.role,
            },
        }

    @app.route("/api/v1/admin/auth/forgot-password", methods=["POST"])
    def forgot_password():
        data = json_body()
        email = text_field(data, "email").lower()
        if not email:
            return {"ok": False, "error": "Email is required."}, 400

        admin = Admin.query.filter_by(email=email).first()
        if admin:
            reset_token = generate_reset_token(admin.email)
            reset_url = f"{request.host_url}api/v1/admin/auth/reset-password/{reset_token}"
            try:
                send_reset_email(admin.email, reset_url)
            except Exception:
                current_app.logger.exception("Could not send reset email to %s", email)
                return {"ok": False, "error": "Email service is not configured."}, 503
        else:
            current_app.logger.warning(
                "Password reset requested for unknown email: %s", email
            )

        return {"ok": True, "message": "If the account exists, a reset link has been sent."}

    @app.route("/api/v1/admin/auth/reset-password/<token>", methods=["POST"])
    def reset_password(token):
        email = verify_reset_token(token, max_age=1800)
        admin = Admin.query.filter_by(email=email).first() if email else None
        if not admin:
            return {"ok": False, "error": "This reset link is invalid or has expired."}, 400

        data = json_body()
        new_password = text_field(data, "password", strip=False)
        confirm_password = text_field(data, "confirm_password", strip=False)

        if not new_password or not confirm_password:
            return {"ok": False, "error": "Please provide a new password and confirm it."}, 400

        if new_password != confirm_password:
            return {"ok": False, "error": "Passwords do not match."}, 400

        if len(new_password) < 8:
            return {"ok": False, "error": "Password must be at least 8 characters long."}, 400

        admin.password_hash = generate_password_hash(
            new_password, method="pbkdf2:sha256"
        )
        db.session.commit()
        current_app.logger.info("Password reset for admin %s", admin.username)
        return {"ok": True}

    @app.route("/api/v1/admin/auth/logout", methods=["POST"])
    @login_required
    def logout():
        logout_user()
        return {"ok": True}
