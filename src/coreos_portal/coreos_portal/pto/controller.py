from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.guards import admin_required, current_role, current_user_id, login_required, roles_required
from ..common.http import json_body, ok
from ..core.enums import DayPart, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import PtoBlackout, PtoRequest, PtoType
from .service import NewPtoRequest


def _request_json(req: PtoRequest) -> dict:
    return {
        "request_id": req.request_id,
        "request_number": req.request_number,
        "user_id": req.user_id,
        "pto_type_id": req.pto_type_id,
        "start_date": req.start_date.strftime("%Y-%m-%d"),
        "end_date": req.end_date.strftime("%Y-%m-%d"),
        "start_time": req.start_time.value,
        "end_time": req.end_time.value,
        "total_days": req.total_days,
        "status": req.status.value,
        "reason": req.reason or "",
        "is_emergency": req.is_emergency,
        "blackout_summary": req.blackout_summary,
        "created_at": req.created_at.strftime("%Y-%m-%d %H:%M") if req.created_at else None,
        "decision_comment": req.decision_comment or "",
    }


def _type_json(t: PtoType) -> dict:
    return {
        "pto_type_id": t.pto_type_id,
        "name": t.name,
        "code": t.code,
        "color": t.color,
        "description": t.description or "",
        "uses_balance": t.uses_balance,
        "negative_allowed": t.negative_allowed,
        "carryover_allowed": t.carryover_allowed,
        "max_carryover_days": t.max_carryover_days,
        "annual_allotment": t.annual_allotment,
        "show_in_department_calendar": t.show_in_department_calendar,
        "is_active": t.is_active,
        "sort_order": t.sort_order,
    }


def _blackout_json(b: PtoBlackout) -> dict:
    def _d(v):
        return v.strftime("%Y-%m-%d") if v else None

    return {
        "blackout_id": b.blackout_id,
        "name": b.name,
        "description": b.description or "",
        "start_date": _d(b.start_date),
        "end_date": _d(b.end_date),
        "date_range": b.formatted_range,
        "restriction_type": b.restriction_type.value,
        "department_ids": list(b.department_ids),
        "user_ids": list(b.user_ids),
        "position": b.position,
        "is_company_wide": b.is_company_wide,
        "is_holiday": b.is_holiday,
        "is_strict": b.is_strict,
        "allow_emergency_override": b.allow_emergency_override,
        "max_requests_allowed": b.max_requests_allowed,
        "pto_type_ids": list(b.pto_type_ids),
        "is_active": b.is_active,
        "is_recurring": b.is_recurring,
        "recurring_days": list(b.recurring_days),
        "recurring_start_date": _d(b.recurring_start_date),
        "recurring_end_date": _d(b.recurring_end_date),
    }


def _new_request_from(data: dict) -> NewPtoRequest:
    try:
        pto_type_id = int(data.get("pto_type_id") or 0)
        start_date = parse_iso_date(str(data.get("start_date") or ""))
        end_date = parse_iso_date(str(data.get("end_date") or ""))
    except ValueError:
        raise ValidationError("pto_type_id, start_date and end_date (YYYY-MM-DD) are required")
    try:
        start_time = DayPart(data.get("start_time") or DayPart.FULL_DAY.value)
        end_time = DayPart(data.get("end_time") or DayPart.FULL_DAY.value)
    except ValueError:
        raise ValidationError("start_time and end_time must be full_day, morning or afternoon")

    total_days = data.get("total_days")
    try:
        total_days = float(total_days) if total_days not in (None, "") else None
    except (TypeError, ValueError):
        raise ValidationError("total_days must be a number")

    return NewPtoRequest(
        pto_type_id=pto_type_id,
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        total_days=total_days,
        reason=data.get("reason"),
        is_emergency=bool(data.get("is_emergency_override") or data.get("is_emergency")),
    )


def _year_arg() -> int:
    try:
        return int(request.args.get("year") or now_local().year)
    except ValueError:
        raise ValidationError("year must be an integer")


def register(app: Flask, container: Container) -> None:
    svc = container.pto_request_service
    balances = container.pto_balance_service
    admin = container.pto_admin_service

    # -------- employee --------
    @app.route("/pto/types", methods=["GET"], endpoint="pto_types")
    @login_required
    def pto_types():
        return ok({"types": [_type_json(t) for t in admin.list_types(active_only=True)]})

    @app.route("/pto/requests", methods=["GET"], endpoint="my_pto_requests")
    @login_required
    def my_pto_requests():
        return ok({"requests": [_request_json(r) for r in svc.list_my_requests(user_id=current_user_id())]})

    @app.route("/pto/requests", methods=["POST"], endpoint="submit_pto_request")
    @login_required
    def submit_pto_request():
        result = svc.submit_request(user_id=current_user_id(), data=_new_request_from(json_body()))

        message = "PTO request submitted successfully."
        if result.blackout.has_conflicts:
            message += " Emergency override applied due to blackout conflicts."
        elif result.blackout.has_warnings:
            message += " Note: Request has blackout period warnings."

        payload = {"message": message, "request": _request_json(result.request)}
        if result.blackout.has_conflicts or result.blackout.has_warnings:
            payload["blackout_status"] = result.blackout.to_dict()
        return ok(payload, 201)

    @app.route("/pto/requests/preview-blackouts", methods=["POST"], endpoint="preview_pto_blackouts")
    @login_required
    def preview_pto_blackouts():
        validation = svc.preview_blackouts(user_id=current_user_id(), data=_new_request_from(json_body()))
        return ok({"validation": validation.to_dict()})

    @app.route("/pto/requests/<int:request_id>", methods=["GET"], endpoint="pto_request_detail")
    @login_required
    def pto_request_detail(request_id: int):
        return ok({"request": _request_json(svc.get_request(viewer_id=current_user_id(), request_id=request_id))})

    @app.route("/pto/requests/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_own_pto_request")
    @login_required
    def cancel_own_pto_request(request_id: int):
        req = svc.cancel_own_request(user_id=current_user_id(), request_id=request_id)
        return ok({"message": "PTO request cancelled successfully.", "request": _request_json(req)})

    @app.route("/pto/balances", methods=["GET"], endpoint="my_pto_balances")
    @login_required
    def my_pto_balances():
        return ok({"balances": balances.balance_summary(user_id=current_user_id(), year=_year_arg())})

    @app.route("/pto/transactions", methods=["GET"], endpoint="my_pto_transactions")
    @login_required
    def my_pto_transactions():
        items = balances.list_transactions(user_id=current_user_id())
        return ok(
            {
                "transactions": [
                    {
                        "transaction_number": t.transaction_number,
                        "pto_type_id": t.pto_type_id,
                        "pto_request_id": t.pto_request_id,
                        "type": t.type.value,
                        "amount": t.amount,
                        "balance_before": t.balance_before,
                        "balance_after": t.balance_after,
                        "description": t.description,
                        "created_at": t.created_at.strftime("%Y-%m-%d %H:%M") if t.created_at else None,
                    }
                    for t in items
                ]
            }
        )

    @app.route("/pto/holidays", methods=["GET"], endpoint="pto_holidays")
    @login_required
    def pto_holidays():
        items = admin.list_holidays(year=_year_arg())
        return ok(
            {
                "holidays": [
                    {"holiday_id": h.holiday_id, "name": h.name, "holiday_date": h.holiday_date.strftime("%Y-%m-%d")}
                    for h in items
                ]
            }
        )

    # -------- approvers --------
    @app.route("/pto/approvals", methods=["GET"], endpoint="pto_approvals")
    @roles_required(Role.MANAGER)
    def pto_approvals():
        items = svc.list_pending_for_approver(approver_id=current_user_id())
        return ok({"requests": [_request_json(r) for r in items]})

    @app.route("/pto/requests/<int:request_id>/approve", methods=["POST"], endpoint="approve_pto_request")
    @roles_required(Role.MANAGER)
    def approve_pto_request(request_id: int):
        req = svc.approve_request(
            approver_id=current_user_id(),
            request_id=request_id,
            comments=json_body().get("comments", ""),
        )
        return ok({"message": "Request approved successfully", "request": _request_json(req)})

    @app.route("/pto/requests/<int:request_id>/deny", methods=["POST"], endpoint="deny_pto_request")
    @roles_required(Role.MANAGER)
    def deny_pto_request(request_id: int):
        req = svc.deny_request(
            approver_id=current_user_id(),
            request_id=request_id,
            comments=json_body().get("comments", ""),
        )
        return ok({"message": "Request denied successfully", "request": _request_json(req)})

    # -------- admin --------
    @app.route("/admin/pto/requests/<int:request_id>/cancel", methods=["POST"], endpoint="admin_cancel_pto_request")
    @admin_required
    def admin_cancel_pto_request(request_id: int):
        req = svc.cancel_request(
            current_role=current_role(),
            admin_id=current_user_id(),
            request_id=request_id,
            reason=json_body().get("reason", ""),
        )
        return ok({"request": _request_json(req)})

    @app.route("/admin/pto/users/<int:user_id>/balances", methods=["GET"], endpoint="admin_user_balances")
    @admin_required
    def admin_user_balances(user_id: int):
        return ok({"balances": balances.balance_summary(user_id=user_id, year=_year_arg())})

    @app.route("/admin/pto/balances", methods=["POST"], endpoint="admin_create_balance")
    @admin_required
    def admin_create_balance():
        data = json_body()
        try:
            balance_id = balances.create_balance(
                user_id=int(data.get("user_id") or 0),
                pto_type_id=int(data.get("pto_type_id") or 0),
                year=int(data.get("year") or now_local().year),
                balance=float(data.get("balance") or 0),
                created_by=current_user_id(),
            )
        except (TypeError, ValueError):
            raise ValidationError("user_id, pto_type_id, year and balance must be numbers")
        return ok({"balance_id": balance_id}, 201)

    @app.route("/admin/pto/balances/<int:balance_id>/adjust", methods=["POST"], endpoint="admin_adjust_balance")
    @admin_required
    def admin_adjust_balance(balance_id: int):
        data = json_body()
        try:
            new_balance = float(data.get("balance"))
        except (TypeError, ValueError):
            raise ValidationError("balance must be a number")
        bal = balances.adjust_balance(
            balance_id=balance_id,
            new_balance=new_balance,
            reason=data.get("reason", ""),
            created_by=current_user_id(),
        )
        return ok({"balance": {"balance_id": bal.balance_id, "balance": bal.balance, "available": bal.available}})

    @app.route("/admin/pto/balances/reset", methods=["POST"], endpoint="admin_reset_balances")
    @admin_required
    def admin_reset_balances():
        try:
            year = int(json_body().get("year") or now_local().year)
        except (TypeError, ValueError):
            raise ValidationError("year must be an integer")
        created = balances.reset_for_new_year(year=year, created_by=current_user_id())
        return ok({"year": year, "created": created})

    @app.route("/admin/pto/types", methods=["GET"], endpoint="admin_pto_types")
    @admin_required
    def admin_pto_types():
        return ok({"types": [_type_json(t) for t in admin.list_types()]})

    @app.route("/admin/pto/types", methods=["POST"], endpoint="admin_create_pto_type")
    @admin_required
    def admin_create_pto_type():
        return ok({"pto_type_id": admin.create_type(json_body())}, 201)

    @app.route("/admin/pto/types/<int:pto_type_id>", methods=["PUT"], endpoint="admin_update_pto_type")
    @admin_required
    def admin_update_pto_type(pto_type_id: int):
        return ok({"type": _type_json(admin.update_type(pto_type_id, json_body()))})

    @app.route("/admin/pto/types/<int:pto_type_id>", methods=["DELETE"], endpoint="admin_deactivate_pto_type")
    @admin_required
    def admin_deactivate_pto_type(pto_type_id: int):
        admin.deactivate_type(pto_type_id)
        return ok()

    @app.route("/admin/pto/blackouts", methods=["GET"], endpoint="admin_blackouts")
    @admin_required
    def admin_blackouts():
        return ok({"blackouts": [_blackout_json(b) for b in admin.list_blackouts()]})

    @app.route("/admin/pto/blackouts", methods=["POST"], endpoint="admin_create_blackout")
    @admin_required
    def admin_create_blackout():
        return ok({"blackout_id": admin.create_blackout(json_body())}, 201)

    @app.route("/admin/pto/blackouts/<int:blackout_id>", methods=["PUT"], endpoint="admin_update_blackout")
    @admin_required
    def admin_update_blackout(blackout_id: int):
        return ok({"blackout": _blackout_json(admin.update_blackout(blackout_id, json_body()))})

    @app.route("/admin/pto/blackouts/<int:blackout_id>", methods=["DELETE"], endpoint="admin_deactivate_blackout")
    @admin_required
    def admin_deactivate_blackout(blackout_id: int):
        admin.deactivate_blackout(blackout_id)
        return ok()

    @app.route("/admin/pto/holidays", methods=["POST"], endpoint="admin_create_holiday")
    @admin_required
    def admin_create_holiday():
        data = json_body()
        try:
            holiday_date = parse_iso_date(str(data.get("holiday_date") or ""))
        except ValueError:
            raise ValidationError("holiday_date must be a date (YYYY-MM-DD)")
        return ok({"holiday_id": admin.create_holiday(name=data.get("name", ""), holiday_date=holiday_date)}, 201)

    @app.route("/admin/pto/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="admin_delete_holiday")
    @admin_required
    def admin_delete_holiday(holiday_id: int):
        admin.delete_holiday(holiday_id)
        return ok()
