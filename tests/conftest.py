from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.coreos_portal.coreos_portal.core.enums import DayPart, PtoStatus, Role, UploadStatus
from src.coreos_portal.coreos_portal.notifications.model import Notification
from src.coreos_portal.coreos_portal.notifications.service import NotificationService
from src.coreos_portal.coreos_portal.parts.model import Part, PartFilters, PartsUpload
from src.coreos_portal.coreos_portal.parts.service import PartsCatalogService
from src.coreos_portal.coreos_portal.pto.admin_service import PtoAdminService
from src.coreos_portal.coreos_portal.pto.balance_service import PtoBalanceService
from src.coreos_portal.coreos_portal.pto.blackouts.validator import BlackoutValidator
from src.coreos_portal.coreos_portal.pto.model import (
    Holiday,
    PtoBalance,
    PtoRequest,
    PtoTransaction,
    PtoType,
    transaction_number,
    transaction_sequence,
)
from src.coreos_portal.coreos_portal.pto.service import PtoRequestService
from src.coreos_portal.coreos_portal.users.model import User


FIXED_NOW = datetime(2026, 3, 2, 9, 0, 0)  # a Monday


class InMemoryUsers:
    def __init__(self, users=()):
        self._by_id: dict[int, User] = {u.user_id: u for u in users}

    def add(self, user: User) -> User:
        self._by_id[user.user_id] = user
        return user

    def get_by_id(self, user_id):
        return self._by_id.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self._by_id.values() if u.username == username), None)

    def create_user(self, *, full_name, username, email, password_hash, role, dept_id, manager_id, position):
        user_id = max(self._by_id, default=0) + 1
        self._by_id[user_id] = User(
            user_id=user_id,
            full_name=full_name,
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
            dept_id=dept_id,
            manager_id=manager_id,
            position=position,
        )
        return user_id

    def delete_by_id(self, user_id):
        return self._by_id.pop(int(user_id), None) is not None

    def set_active(self, user_id, *, is_active):
        self._by_id[int(user_id)] = replace(self._by_id[int(user_id)], is_active=is_active)
        return True

    def set_manager(self, user_id, *, manager_id):
        self._by_id[int(user_id)] = replace(self._by_id[int(user_id)], manager_id=manager_id)
        return True

    def list_by_role(self, role):
        return [u for u in self._by_id.values() if u.role == role and u.is_active]

    def list_direct_reports(self, manager_id):
        return [u for u in self._by_id.values() if u.manager_id == int(manager_id)]

    def list_active(self):
        return [u for u in self._by_id.values() if u.is_active]

    def list_admin_view(self):
        return [{"user_id": u.user_id, "username": u.username, "role": u.role.value} for u in self._by_id.values()]


class InMemoryPtoTypes:
    def __init__(self, types=()):
        self._by_id: dict[int, PtoType] = {t.pto_type_id: t for t in types}

    def get_by_id(self, pto_type_id):
        return self._by_id.get(int(pto_type_id))

    def list_all(self, *, active_only=False):
        items = sorted(self._by_id.values(), key=lambda t: (t.sort_order, t.name))
        return [t for t in items if t.is_active or not active_only]

    def create(self, pto_type):
        pto_type_id = max(self._by_id, default=0) + 1
        self._by_id[pto_type_id] = replace(pto_type, pto_type_id=pto_type_id)
        return pto_type_id

    def update(self, pto_type):
        self._by_id[pto_type.pto_type_id] = pto_type
        return True


class InMemoryBalances:
    def __init__(self):
        self._by_id: dict[int, PtoBalance] = {}
        self.transactions: list[PtoTransaction] = []

    def add(self, *, user_id, pto_type_id, year, balance, pending=0.0, used=0.0) -> PtoBalance:
        balance_id = self.create(user_id=user_id, pto_type_id=pto_type_id, year=year, balance=balance)
        self._by_id[balance_id] = replace(self._by_id[balance_id], pending_balance=float(pending), used_balance=float(used))
        return self._by_id[balance_id]

    def get(self, *, user_id, pto_type_id, year):
        return next(
            (
                b
                for b in self._by_id.values()
                if b.user_id == int(user_id) and b.pto_type_id == int(pto_type_id) and b.year == int(year)
            ),
            None,
        )

    def get_by_id(self, balance_id):
        return self._by_id.get(int(balance_id))

    def list_for_user(self, *, user_id, year=None):
        return [b for b in self._by_id.values() if b.user_id == int(user_id) and (year is None or b.year == int(year))]

    def list_for_year(self, year):
        return [b for b in self._by_id.values() if b.year == int(year)]

    def create(self, *, user_id, pto_type_id, year, balance):
        balance_id = len(self._by_id) + 1
        self._by_id[balance_id] = PtoBalance(
            balance_id=balance_id, user_id=int(user_id), pto_type_id=int(pto_type_id), year=int(year), balance=float(balance)
        )
        return balance_id

    def shift_amounts(self, balance_id, *, pending=0.0, used=0.0, require_available=None):
        bal = self._by_id[int(balance_id)]
        if require_available is not None and bal.available < require_available:
            return False
        self._by_id[int(balance_id)] = replace(
            bal,
            pending_balance=max(0.0, bal.pending_balance + pending),
            used_balance=max(0.0, bal.used_balance + used),
        )
        return True

    def set_balance(self, balance_id, balance):
        self._by_id[int(balance_id)] = replace(self._by_id[int(balance_id)], balance=float(balance))
        return True

    def add_transaction(self, *, year, user_id, pto_type_id, pto_request_id, amount, balance_before,
                        balance_after, type, description, created_by):
        prefix = f"TXN-{year}-"
        taken = [transaction_sequence(t.transaction_number) for t in self.transactions if t.transaction_number.startswith(prefix)]
        txn = PtoTransaction(
            transaction_id=len(self.transactions) + 1,
            transaction_number=transaction_number(year, max(taken, default=0) + 1),
            user_id=user_id,
            pto_type_id=pto_type_id,
            pto_request_id=pto_request_id,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            type=type,
            description=description,
            created_by=created_by,
        )
        self.transactions.append(txn)
        return txn.transaction_id

    def list_transactions(self, *, user_id, limit=200):
        return [t for t in reversed(self.transactions) if t.user_id == int(user_id)][:limit]


class InMemoryPtoRequests:
    def __init__(self):
        self._by_id: dict[int, PtoRequest] = {}

    def add(self, *, user_id, pto_type_id, start_date, end_date, total_days, status=PtoStatus.APPROVED) -> PtoRequest:
        request_id = len(self._by_id) + 1
        self._by_id[request_id] = PtoRequest(
            request_id=request_id,
            request_number=f"PTO-{user_id}-{request_id}",
            user_id=user_id,
            pto_type_id=pto_type_id,
            start_date=start_date,
            end_date=end_date,
            start_time=DayPart.FULL_DAY,
            end_time=DayPart.FULL_DAY,
            total_days=total_days,
            status=status,
            created_at=FIXED_NOW,
        )
        return self._by_id[request_id]

    def create(self, *, request_number, user_id, pto_type_id, start_date, end_date, start_time, end_time, total_days,
               reason, is_emergency, blackout_summary):
        request_id = len(self._by_id) + 1
        self._by_id[request_id] = PtoRequest(
            request_id=request_id,
            request_number=request_number,
            user_id=int(user_id),
            pto_type_id=int(pto_type_id),
            start_date=start_date,
            end_date=end_date,
            start_time=DayPart(start_time),
            end_time=DayPart(end_time),
            total_days=float(total_days),
            status=PtoStatus.PENDING,
            reason=reason,
            is_emergency=bool(is_emergency),
            blackout_summary=blackout_summary,
            created_at=FIXED_NOW,
        )
        return request_id

    def get_by_id(self, request_id):
        return self._by_id.get(int(request_id))

    def list_for_user(self, *, user_id, limit=200):
        return [r for r in self._by_id.values() if r.user_id == int(user_id)][:limit]

    def list_by_status(self, *, status, user_ids=None, limit=500):
        items = [r for r in self._by_id.values() if r.status == status]
        if user_ids is not None:
            items = [r for r in items if r.user_id in set(user_ids)]
        return items[:limit]

    def list_active_overlapping(self, *, start_date, end_date):
        return [
            r
            for r in self._by_id.values()
            if r.status in (PtoStatus.PENDING, PtoStatus.APPROVED) and r.start_date <= end_date and r.end_date >= start_date
        ]

    def transition(self, request_id, *, expected, status, decided_by, comment=None):
        req = self._by_id.get(int(request_id))
        if not req or req.status != expected:
            return False
        self._by_id[int(request_id)] = replace(
            req, status=status, decided_by=decided_by, decided_at=FIXED_NOW, decision_comment=comment
        )
        return True

    def count_by_status(self, *, year=None):
        counts = {s.value: 0 for s in PtoStatus}
        for r in self._by_id.values():
            if year is None or r.start_date.year == int(year):
                counts[r.status.value] += 1
        return counts


class InMemoryBlackouts:
    def __init__(self, blackouts=()):
        self._by_id = {b.blackout_id: b for b in blackouts}

    def add(self, blackout):
        self._by_id[blackout.blackout_id] = blackout
        return blackout

    def get_by_id(self, blackout_id):
        return self._by_id.get(int(blackout_id))

    def list_active(self):
        return [b for b in self._by_id.values() if b.is_active]

    def list_all(self):
        return list(self._by_id.values())

    def create(self, blackout):
        blackout_id = max(self._by_id, default=0) + 1
        self._by_id[blackout_id] = replace(blackout, blackout_id=blackout_id)
        return blackout_id

    def update(self, blackout):
        self._by_id[blackout.blackout_id] = blackout
        return True


class InMemoryHolidays:
    def __init__(self, holidays=()):
        self._by_id = {h.holiday_id: h for h in holidays}

    def list_in_range(self, *, start_date, end_date):
        return [h for h in self._by_id.values() if start_date <= h.holiday_date <= end_date]

    def list_for_year(self, year):
        return [h for h in self._by_id.values() if h.holiday_date.year == int(year)]

    def create(self, *, name, holiday_date):
        holiday_id = max(self._by_id, default=0) + 1
        self._by_id[holiday_id] = Holiday(holiday_id=holiday_id, name=name, holiday_date=holiday_date)
        return holiday_id

    def delete_by_id(self, holiday_id):
        return self._by_id.pop(int(holiday_id), None) is not None


class InMemoryNotifications:
    def __init__(self):
        self.items: list[Notification] = []

    def create(self, *, user_id, kind, title, body, related_request_id=None):
        n = Notification(
            notification_id=len(self.items) + 1,
            user_id=int(user_id),
            kind=kind,
            title=title,
            body=body,
            related_request_id=related_request_id,
            created_at=FIXED_NOW,
        )
        self.items.append(n)
        return n.notification_id

    def for_user(self, user_id) -> list[Notification]:
        return [n for n in self.items if n.user_id == user_id]

    def list_for_user(self, *, user_id, unread_only=False, limit=200):
        return [n for n in self.for_user(user_id) if not (unread_only and n.is_read)][:limit]

    def count_unread(self, *, user_id):
        return len([n for n in self.for_user(user_id) if not n.is_read])

    def mark_read(self, *, user_id, notification_id):
        for i, n in enumerate(self.items):
            if n.notification_id == notification_id and n.user_id == user_id:
                self.items[i] = replace(n, is_read=True)
                return True
        return False

    def mark_all_read(self, *, user_id):
        changed = 0
        for i, n in enumerate(self.items):
            if n.user_id == user_id and not n.is_read:
                self.items[i] = replace(n, is_read=True)
                changed += 1
        return changed


class InMemoryParts:
    def __init__(self):
        self._by_id: dict[int, Part] = {}
        self._uploads: dict[int, PartsUpload] = {}
        self._seq = 0

    def add(self, part_number, **kw) -> Part:
        self._seq += 1
        kw.setdefault("upload_id", 1)
        kw.setdefault("batch_id", "seed")
        kw.setdefault("file_context", "seed")
        part = Part(part_id=self._seq, part_number=part_number, created_at=datetime(2026, 1, 1) + timedelta(seconds=self._seq), **kw)
        self._by_id[part.part_id] = part
        return part

    @staticmethod
    def _matches(part: Part, f: PartFilters) -> bool:
        if not part.is_active:
            return False
        for value, wanted in (
            (part.manufacturer, f.manufacturers),
            (part.category, f.categories),
            (part.part_type, f.part_types),
            (part.manufacturer_serial, f.serials),
        ):
            if wanted and value not in wanted:
                return False
        if f.models and not set(f.models) & set(part.models):
            return False
        if f.upload_id is not None and part.upload_id != f.upload_id:
            return False
        if f.search:
            haystack = [part.part_number, part.manufacturer_serial, part.description, ",".join(part.models)]
            if not any(f.search.lower() in (h or "").lower() for h in haystack):
                return False
        return True

    def search(self, filters, *, offset, limit):
        found = sorted(
            (p for p in self._by_id.values() if self._matches(p, filters)),
            key=lambda p: (p.created_at, p.part_id),
            reverse=True,
        )
        return found[offset:offset + limit], len(found)

    def get_by_id(self, part_id):
        return self._by_id.get(int(part_id))

    def find_id(self, *, file_context, part_number, manufacturer):
        return next(
            (
                p.part_id
                for p in self._by_id.values()
                if (p.file_context, p.part_number, p.manufacturer or "") == (file_context, part_number, manufacturer or "")
            ),
            None,
        )

    def update(self, part):
        self._by_id[part.part_id] = part
        return True

    def count_active(self):
        return sum(1 for p in self._by_id.values() if p.is_active)

    def distinct_values(self, column, *, limit=None):
        active = [p for p in self._by_id.values() if p.is_active]
        if column == "models":
            values = sorted({m for p in active for m in p.models})
        else:
            values = sorted({getattr(p, column) for p in active if getattr(p, column)})
        return values[:limit] if limit else values

    def save_imported(self, *, upload_id, batch_id, file_context, parts):
        created = updated = 0
        for item in parts:
            data = dict(
                upload_id=upload_id,
                batch_id=batch_id,
                file_context=file_context,
                description=item.description,
                manufacturer=item.manufacturer,
                manufacturer_serial=item.manufacturer_serial,
                part_type=item.part_type,
                category=item.category,
                models=item.models,
                quantity=item.quantity,
                location=item.location,
                fields=dict(item.fields),
                is_active=True,
            )
            part_id = self.find_id(file_context=file_context, part_number=item.part_number, manufacturer=item.manufacturer)
            if part_id:
                self._by_id[part_id] = replace(self._by_id[part_id], **data)
                updated += 1
            else:
                self.add(item.part_number, **data)
                created += 1
        return created, updated

    def create_upload(self, *, batch_id, filename, upload_type, uploaded_by):
        upload_id = len(self._uploads) + 1
        self._uploads[upload_id] = PartsUpload(
            upload_id=upload_id,
            batch_id=batch_id,
            filename=filename,
            upload_type=upload_type,
            status=UploadStatus.PROCESSING,
            uploaded_by=uploaded_by,
            uploaded_at=FIXED_NOW,
        )
        return upload_id

    def finish_upload(self, upload_id, *, status, total_parts, processed_parts, logs):
        self._uploads[upload_id] = replace(
            self._uploads[upload_id],
            status=status,
            total_parts=total_parts,
            processed_parts=processed_parts,
            processing_logs=tuple(logs),
            completed_at=FIXED_NOW,
        )
        return True

    def get_upload(self, upload_id):
        return self._uploads.get(int(upload_id))

    def list_uploads(self, *, search, offset, limit):
        found = [u for u in reversed(list(self._uploads.values())) if not search or search in u.filename]
        return found[offset:offset + limit], len(found)

    def upload_statistics(self, upload_id):
        mine = [p for p in self._by_id.values() if p.upload_id == int(upload_id)]
        return {
            "total_parts": len(mine),
            "active_parts": sum(1 for p in mine if p.is_active),
            "unique_manufacturers": len({p.manufacturer for p in mine if p.manufacturer}),
        }


def make_user(user_id: int, role: Role, *, dept_id: Optional[int] = 10, manager_id=None, position=None,
              username=None, password="secret1", is_active=True) -> User:
    return User(
        user_id=user_id,
        full_name=f"User {user_id}",
        username=username or f"user{user_id}",
        password_hash=generate_password_hash(password),
        role=role,
        dept_id=dept_id,
        manager_id=manager_id,
        position=position,
        is_active=is_active,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def pto():
    """PTO services over in-memory repositories.

    Users: 1 admin, 2 manager (dept 10), 3 employee reporting to 2 (dept 10,
    Picker), 4 employee in dept 20 without a manager, 5 another manager.
    Types: 1 PTO (balance, carryover 5), 2 SICK (negative allowed), 3 UNPAID.
    Employee 3 holds 10 PTO and 2 SICK days for 2026.
    """

    users = InMemoryUsers(
        [
            make_user(1, Role.ADMIN, dept_id=None),
            make_user(2, Role.MANAGER),
            make_user(3, Role.EMPLOYEE, manager_id=2, position="Picker"),
            make_user(4, Role.EMPLOYEE, dept_id=20),
            make_user(5, Role.MANAGER, dept_id=20),
        ]
    )
    types = InMemoryPtoTypes(
        [
            PtoType(1, "Paid Time Off", "PTO", carryover_allowed=True, max_carryover_days=5, annual_allotment=15, sort_order=1),
            PtoType(2, "Sick Leave", "SICK", negative_allowed=True, annual_allotment=5, show_in_department_calendar=False, sort_order=2),
            PtoType(3, "Unpaid Leave", "UNPAID", uses_balance=False, sort_order=3),
        ]
    )
    balances = InMemoryBalances()
    balances.add(user_id=3, pto_type_id=1, year=2026, balance=10)
    balances.add(user_id=3, pto_type_id=2, year=2026, balance=2)

    requests = InMemoryPtoRequests()
    blackouts = InMemoryBlackouts()
    holidays = InMemoryHolidays()
    notifications = InMemoryNotifications()

    clock = lambda: FIXED_NOW  # noqa: E731
    notifier = NotificationService(notifications, users)
    balance_service = PtoBalanceService(balances, types, clock=clock)
    validator = BlackoutValidator(blackouts, holidays, requests, users)
    service = PtoRequestService(requests, types, balance_service, users, validator, notifier, clock=clock)
    admin_service = PtoAdminService(types, blackouts, holidays)

    return SimpleNamespace(
        users=users,
        types=types,
        balances=balances,
        requests=requests,
        blackouts=blackouts,
        holidays=holidays,
        notifications=notifications,
        notifier=notifier,
        balance_service=balance_service,
        validator=validator,
        service=service,
        admin_service=admin_service,
        today=date(2026, 3, 2),
    )


@pytest.fixture
def parts():
    """Parts catalog service over an in-memory repository (empty catalog)."""

    repo = InMemoryParts()
    return SimpleNamespace(repo=repo, service=PartsCatalogService(repo, max_upload_mb=1))
