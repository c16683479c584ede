from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.guards import admin_required, current_role, current_user_id, login_required, roles_required
from ..common.http import json_body, ok
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def _user_json(user) -> dict:
    return {
        "user_id": user.user_id,
        "full_name": user.full_name,
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "dept_id": user.dept_id,
        "manager_id": user.manager_id,
        "position": user.position,
        "is_active": user.is_active,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=int(app.config.get("SESSION_DAYS", DEFAULT_SESSION_DAYS)))

        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["dept_id"] = s_user.dept_id
        return ok({"user": {"user_id": s_user.user_id, "full_name": s_user.full_name, "role": s_user.role.value}})

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user = container.user_service.get_user(current_user_id())
        return ok({"user": _user_json(user)})

    @app.route("/team", methods=["GET"], endpoint="my_team")
    @roles_required(Role.MANAGER)
    def my_team():
        team = container.user_service.list_team(manager_id=current_user_id())
        return ok({"users": [_user_json(u) for u in team]})

    @app.route("/departments", methods=["GET"], endpoint="departments")
    @login_required
    def departments():
        items = container.departments_repo.list_all()
        return ok({"departments": [{"dept_id": d.dept_id, "dept_name": d.dept_name} for d in items]})

    @app.route("/admin/users", methods=["GET"], endpoint="admin_users")
    @admin_required
    def admin_users():
        return ok({"users": list(container.user_service.list_admin_view())})

    @app.route("/admin/users", methods=["POST"], endpoint="add_user")
    @admin_required
    def add_user():
        data = json_body()
        try:
            role = Role(data.get("role", Role.EMPLOYEE.value))
        except ValueError:
            raise ValidationError("Invalid account role")

        user_id = container.user_service.create_account(
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=role,
            dept_id=data.get("dept_id"),
            manager_id=data.get("manager_id"),
            email=data.get("email"),
            position=data.get("position"),
        )
        return ok({"user_id": user_id}, 201)

    @app.route("/admin/users/<int:user_id>/manager", methods=["POST"], endpoint="set_user_manager")
    @admin_required
    def set_user_manager(user_id: int):
        container.user_service.set_manager(
            current_role=current_role(),
            user_id=user_id,
            manager_id=json_body().get("manager_id"),
        )
        return ok()

    @app.route("/admin/users/<int:user_id>/active", methods=["POST"], endpoint="set_user_active")
    @admin_required
    def set_user_active(user_id: int):
        container.user_service.set_active(
            current_role=current_role(),
            user_id=user_id,
            is_active=bool(json_body().get("is_active", True)),
        )
        return ok()

    @app.route("/admin/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @admin_required
    def delete_user(user_id: int):
        container.user_service.delete_user(current_role=current_role(), user_id=user_id)
        return ok()
