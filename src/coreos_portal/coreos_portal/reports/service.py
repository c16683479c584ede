from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import PtoStatus
from ..pto.repository import BlackoutRepository, PtoBalanceRepository, PtoRequestRepository, PtoTypeRepository
from ..users.repository import UserRepository


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


USAGE_FIELDS = (
    "request_number",
    "full_name",
    "username",
    "dept_name",
    "pto_type",
    "start_date",
    "end_date",
    "total_days",
    "status",
)


class PtoReportService:
    def __init__(
        self,
        requests: PtoRequestRepository,
        balances: PtoBalanceRepository,
        types: PtoTypeRepository,
        blackouts: BlackoutRepository,
        users: UserRepository,
    ):
        self._requests = requests
        self._balances = balances
        self._types = types
        self._blackouts = blackouts
        self._users = users

    def build_usage_report(
        self,
        *,
        start: date,
        end: date,
        dept_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> ReportData:
        query_rows = self._requests.get_report_rows(
            start_date=start,
            end_date=end,
            statuses=(PtoStatus.APPROVED,),
            dept_id=dept_id,
            user_id=user_id,
        )

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for r in query_rows:
            out_rows.append(
                {
                    "request_id": r.request_id,
                    "request_number": r.request_number,
                    "user_id": r.user_id,
                    "full_name": r.full_name,
                    "username": r.username,
                    "dept_name": r.dept_name or "-",
                    "pto_type": r.pto_type_name,
                    "start_date": r.start_date.strftime("%Y-%m-%d"),
                    "end_date": r.end_date.strftime("%Y-%m-%d"),
                    "total_days": r.total_days,
                    "status": r.status.value,
                }
            )

            s = summary_map.get(r.user_id)
            if not s:
                s = {
                    "user_id": r.user_id,
                    "full_name": r.full_name,
                    "username": r.username,
                    "total_days": 0.0,
                    "requests": 0,
                }
                summary_map[r.user_id] = s
            s["total_days"] += r.total_days
            s["requests"] += 1

        summary = sorted(summary_map.values(), key=lambda x: x["total_days"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)

    def hr_dashboard(self, *, year: int) -> dict:
        types = self._types.list_all()
        type_names = {t.pto_type_id: t.name for t in types}
        people = {u.user_id: u for u in self._users.list_active()}

        employees: dict[int, dict] = {}
        for bal in self._balances.list_for_year(int(year)):
            user = people.get(bal.user_id)
            if not user:
                continue
            entry = employees.setdefault(
                bal.user_id,
                {"user_id": user.user_id, "full_name": user.full_name, "position": user.position or "-", "balances": []},
            )
            entry["balances"].append(
                {
                    "pto_type_id": bal.pto_type_id,
                    "pto_type": type_names.get(bal.pto_type_id, "-"),
                    "assigned": bal.balance,
                    "pending": bal.pending_balance,
                    "used": bal.used_balance,
                    "available": max(0.0, bal.available),
                }
            )

        return {
            "year": int(year),
            "requests_by_status": self._requests.count_by_status(year=int(year)),
            "pto_types": len([t for t in types if t.is_active]),
            "active_blackouts": len(self._blackouts.list_active()),
            "employees": sorted(employees.values(), key=lambda e: e["full_name"]),
        }

    def department_calendar(self, *, dept_id: int, start: date, end: date) -> list[dict]:
        rows = self._requests.get_report_rows(
            start_date=start,
            end_date=end,
            statuses=(PtoStatus.PENDING, PtoStatus.APPROVED),
            dept_id=int(dept_id),
            calendar_only=True,
        )
        return [
            {
                "request_id": r.request_id,
                "user_id": r.user_id,
                "title": f"{r.full_name} - {r.pto_type_name}",
                "full_name": r.full_name,
                "pto_type": r.pto_type_name,
                "color": r.pto_type_color,
                "start": r.start_date.strftime("%Y-%m-%d"),
                "end": r.end_date.strftime("%Y-%m-%d"),
                "total_days": r.total_days,
                "status": r.status.value,
            }
            for r in rows
        ]
