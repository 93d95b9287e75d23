from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container
from .auth import current_principal, require_role


def register(app: Flask, container: Container) -> None:
    signed_in = require_role(container.auth_service)

    @app.route("/api/auth/login/<role>", methods=["POST"], endpoint="auth_login")
    def login(role: str):
        data = request.get_json(silent=True) or {}
        result = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""), role)
        return jsonify(
            {
                "success": True,
                "message": f"{result.principal.role.value.capitalize()} logged in successfully",
                "token": result.token,
                "user": {"username": result.principal.username, "name": result.name, "role": result.principal.role.value},
            }
        )

    @app.route("/api/auth/change-password", methods=["PUT"], endpoint="auth_change_password")
    @signed_in
    def change_password():
        data = request.get_json(silent=True) or {}
        container.auth_service.change_password(
            current_principal(),
            data.get("currentPassword", ""),
            data.get("newPassword", ""),
        )
        return jsonify({"success": True, "message": "Password updated successfully"})
