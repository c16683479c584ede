from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import TransactionType
from ..core.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from .model import PtoBalance
from .repository import PtoBalanceRepository, PtoTypeRepository

logger = logging.getLogger(__name__)


class PtoBalanceService:
    """Balances per user, type and year, plus the ledger of every change.

    `balance` is the yearly allotment. Submitting moves days into
    `pending_balance`, approval moves them on to `used_balance`. Ledger
    entries record the remaining amount (`balance - used_balance`) before
    and after each change. Amounts are moved with relative writes and the
    ledger figures are read back from the stored row.
    """

    def __init__(
        self,
        balances: PtoBalanceRepository,
        types: PtoTypeRepository,
        *,
        clock: Callable = now_local,
    ):
        self._balances = balances
        self._types = types
        self._clock = clock

    # -------- ledger --------
    def _record(
        self,
        bal: PtoBalance,
        *,
        type: TransactionType,
        amount: float,
        before: float,
        after: float,
        description: str,
        created_by: Optional[int],
        request_id: Optional[int] = None,
    ) -> int:
        return self._balances.add_transaction(
            year=self._clock().year,
            user_id=bal.user_id,
            pto_type_id=bal.pto_type_id,
            pto_request_id=request_id,
            amount=amount,
            balance_before=before,
            balance_after=after,
            type=type,
            description=description,
            created_by=created_by,
        )

    def _reload(self, bal: PtoBalance) -> PtoBalance:
        fresh = self._balances.get_by_id(bal.balance_id)
        if not fresh:
            raise NotFoundError("Balance not found")
        return fresh

    # -------- request lifecycle hooks --------
    def find(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        return self._balances.get(user_id=int(user_id), pto_type_id=int(pto_type_id), year=int(year))

    def hold_pending(self, bal: PtoBalance, days: float, *, allow_negative: bool = False) -> None:
        """Reserve `days` as pending; raises if they are no longer available."""

        held = self._balances.shift_amounts(
            bal.balance_id,
            pending=days,
            require_available=None if allow_negative else days,
        )
        if not held:
            fresh = self._reload(bal)
            raise InsufficientBalanceError("Insufficient PTO balance", available=fresh.available, requested=days)

    def release_pending(self, bal: PtoBalance, days: float) -> None:
        self._balances.shift_amounts(bal.balance_id, pending=-days)

    def consume(self, bal: PtoBalance, days: float, *, request_id: int, request_number: str, approved_by: int) -> None:
        self._balances.shift_amounts(bal.balance_id, pending=-days, used=days)
        fresh = self._reload(bal)
        after = fresh.balance - fresh.used_balance
        self._record(
            fresh,
            type=TransactionType.USAGE,
            amount=-days,
            before=after + days,
            after=after,
            description=f"PTO request {request_number} approved",
            created_by=approved_by,
            request_id=request_id,
        )

    def restore_used(self, bal: PtoBalance, days: float, *, request_id: int, request_number: str, cancelled_by: int) -> None:
        self._balances.shift_amounts(bal.balance_id, used=-days)
        fresh = self._reload(bal)
        after = fresh.balance - fresh.used_balance
        self._record(
            fresh,
            type=TransactionType.REVERSAL,
            amount=days,
            before=after - days,
            after=after,
            description=f"PTO request {request_number} cancelled after approval",
            created_by=cancelled_by,
            request_id=request_id,
        )

    # -------- admin operations --------
    def create_balance(self, *, user_id: int, pto_type_id: int, year: int, balance: float, created_by: Optional[int]) -> int:
        pto_type = self._types.get_by_id(int(pto_type_id))
        if not pto_type:
            raise NotFoundError("PTO type not found")
        if not pto_type.uses_balance:
            raise ValidationError(f"{pto_type.name} does not track a balance")
        if float(balance) < 0:
            raise ValidationError("Balance cannot be negative")
        if self.find(user_id=user_id, pto_type_id=pto_type_id, year=year):
            raise ValidationError("A balance for this user, type and year already exists")

        balance_id = self._balances.create(user_id=int(user_id), pto_type_id=int(pto_type_id), year=int(year), balance=float(balance))
        bal = PtoBalance(balance_id=balance_id, user_id=int(user_id), pto_type_id=int(pto_type_id), year=int(year), balance=float(balance))
        self._record(
            bal,
            type=TransactionType.ACCRUAL,
            amount=float(balance),
            before=0.0,
            after=float(balance),
            description=f"Initial {pto_type.name} balance for {year}",
            created_by=created_by,
        )
        logger.info("Created %s balance %s for user %s (%s days)", pto_type.code, year, user_id, balance)
        return balance_id

    def adjust_balance(self, *, balance_id: int, new_balance: float, reason: str, created_by: Optional[int]) -> PtoBalance:
        bal = self._balances.get_by_id(int(balance_id))
        if not bal:
            raise NotFoundError("Balance not found")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required for balance adjustments")

        new_balance = float(new_balance)
        if not math.isfinite(new_balance) or new_balance < 0:
            raise ValidationError("Balance must be a non-negative number")
        diff = new_balance - bal.balance
        if diff == 0:
            return bal

        self._balances.set_balance(bal.balance_id, new_balance)
        fresh = self._reload(bal)
        after = fresh.balance - fresh.used_balance
        self._record(
            fresh,
            type=TransactionType.ADJUSTMENT,
            amount=diff,
            before=after - diff,
            after=after,
            description=reason,
            created_by=created_by,
        )
        logger.info("Adjusted balance %s by %+.1f days (%s)", bal.balance_id, diff, reason)
        return fresh

    def reset_for_new_year(self, *, year: int, created_by: Optional[int] = None) -> int:
        """Open `year` balances from the previous year's; returns how many were created."""

        created = 0
        types = {t.pto_type_id: t for t in self._types.list_all()}
        for prev in self._balances.list_for_year(int(year) - 1):
            pto_type = types.get(prev.pto_type_id)
            if not pto_type or not pto_type.is_active or not pto_type.uses_balance:
                continue
            if self.find(user_id=prev.user_id, pto_type_id=prev.pto_type_id, year=year):
                continue

            carryover = 0.0
            if pto_type.carryover_allowed:
                carryover = max(0.0, min(prev.available, pto_type.max_carryover_days))
            amount = pto_type.annual_allotment + carryover

            balance_id = self._balances.create(user_id=prev.user_id, pto_type_id=prev.pto_type_id, year=int(year), balance=amount)
            bal = PtoBalance(balance_id=balance_id, user_id=prev.user_id, pto_type_id=prev.pto_type_id, year=int(year), balance=amount)
            description = f"{year} reset: {pto_type.annual_allotment:g} allotted"
            if carryover:
                description += f" + {carryover:g} carried over"
            self._record(
                bal,
                type=TransactionType.RESET,
                amount=amount,
                before=0.0,
                after=amount,
                description=description,
                created_by=created_by,
            )
            created += 1

        logger.info("Year reset %s created %d balance(s)", year, created)
        return created

    def balance_summary(self, *, user_id: int, year: int) -> list[dict]:
        types = {t.pto_type_id: t for t in self._types.list_all()}
        out = []
        for bal in self._balances.list_for_user(user_id=int(user_id), year=int(year)):
            pto_type = types.get(bal.pto_type_id)
            out.append(
                {
                    "balance_id": bal.balance_id,
                    "pto_type_id": bal.pto_type_id,
                    "pto_type_name": pto_type.name if pto_type else "-",
                    "color": pto_type.color if pto_type else None,
                    "year": bal.year,
                    "balance": bal.balance,
                    "pending": bal.pending_balance,
                    "used": bal.used_balance,
                    "available": bal.available,
                }
            )
        return out

    def list_transactions(self, *, user_id: int, limit: int = 200):
        return self._balances.list_transactions(user_id=int(user_id), limit=int(limit))
