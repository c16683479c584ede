from __future__ import annotations

from datetime import date

from flask import Flask, request, session

from ..common.datetime_utils import now_local
from ..common.guards import current_role, roles_required
from ..common.http import csv_response, date_arg, ok
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .service import USAGE_FIELDS


def _optional_int(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _range() -> tuple[date, date]:
    today = now_local().date()
    start = date_arg("start", date(today.year, 1, 1))
    end = date_arg("end", date(today.year, 12, 31))
    if end < start:
        raise ValidationError("end must be on or after start")
    return start, end


def register(app: Flask, container: Container) -> None:
    reports = container.pto_report_service

    @app.route("/reports/pto-usage", methods=["GET"], endpoint="pto_usage_report")
    @roles_required(Role.MANAGER)
    def pto_usage_report():
        start, end = _range()
        data = reports.build_usage_report(
            start=start,
            end=end,
            dept_id=_optional_int("dept_id"),
            user_id=_optional_int("user_id"),
        )
        return ok({"start": start.isoformat(), "end": end.isoformat(), "rows": data.rows, "summary": data.summary})

    @app.route("/reports/pto-usage/report.csv", methods=["GET"], endpoint="pto_usage_report_csv")
    @roles_required(Role.MANAGER)
    def pto_usage_report_csv():
        start, end = _range()
        data = reports.build_usage_report(
            start=start,
            end=end,
            dept_id=_optional_int("dept_id"),
            user_id=_optional_int("user_id"),
        )
        return csv_response(
            app,
            rows=data.rows,
            fieldnames=USAGE_FIELDS,
            filename=f"pto_usage_{start.isoformat()}_{end.isoformat()}.csv",
        )

    @app.route("/reports/hr-dashboard", methods=["GET"], endpoint="hr_dashboard")
    @roles_required(Role.ADMIN)
    def hr_dashboard():
        year = _optional_int("year") or now_local().year
        return ok({"dashboard": reports.hr_dashboard(year=year)})

    @app.route("/reports/hr-dashboard/report.csv", methods=["GET"], endpoint="hr_dashboard_csv")
    @roles_required(Role.ADMIN)
    def hr_dashboard_csv():
        year = _optional_int("year") or now_local().year
        dashboard = reports.hr_dashboard(year=year)
        rows = [
            {"full_name": e["full_name"], "position": e["position"], **b}
            for e in dashboard["employees"]
            for b in e["balances"]
        ]
        return csv_response(
            app,
            rows=rows,
            fieldnames=("full_name", "position", "pto_type", "assigned", "pending", "used", "available"),
            filename=f"pto_balances_{year}.csv",
        )

    @app.route("/reports/department-calendar", methods=["GET"], endpoint="department_calendar")
    @roles_required(Role.EMPLOYEE, Role.MANAGER)
    def department_calendar():
        dept_id = _optional_int("dept_id") or session.get("dept_id")
        if not dept_id:
            raise ValidationError("dept_id is required")
        if current_role() != Role.ADMIN and int(dept_id) != session.get("dept_id"):
            raise AuthorizationError("You can only view your own department calendar")
        start, end = _range()
        return ok({"events": reports.department_calendar(dept_id=int(dept_id), start=start, end=end)})
