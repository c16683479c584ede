from __future__ import annotations

from flask import Flask, request

from ..common.guards import current_user_id, login_required
from ..common.http import ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/notifications", methods=["GET"], endpoint="notifications")
    @login_required
    def notifications():
        unread_only = request.args.get("unread") in {"1", "true", "yes"}
        items = container.notification_service.list_for_user(user_id=current_user_id(), unread_only=unread_only)
        return ok(
            {
                "notifications": [
                    {
                        "notification_id": n.notification_id,
                        "kind": n.kind.value,
                        "title": n.title,
                        "body": n.body,
                        "related_request_id": n.related_request_id,
                        "is_read": n.is_read,
                        "created_at": n.created_at.strftime("%Y-%m-%d %H:%M") if n.created_at else None,
                    }
                    for n in items
                ]
            }
        )

    @app.route("/notifications/unread-count", methods=["GET"], endpoint="notifications_unread_count")
    @login_required
    def unread_count():
        return ok({"unread": container.notification_service.unread_count(user_id=current_user_id())})

    @app.route("/notifications/<int:notification_id>/read", methods=["POST"], endpoint="notification_read")
    @login_required
    def mark_read(notification_id: int):
        updated = container.notification_service.mark_read(user_id=current_user_id(), notification_id=notification_id)
        return ok({"updated": updated})

    @app.route("/notifications/read-all", methods=["POST"], endpoint="notifications_read_all")
    @login_required
    def mark_all_read():
        return ok({"updated": container.notification_service.mark_all_read(user_id=current_user_id())})
