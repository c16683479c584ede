from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import PtoStatus, TransactionType
from .model import Holiday, PtoBalance, PtoBlackout, PtoReportRow, PtoRequest, PtoTransaction, PtoType


class PtoTypeRepository(Protocol):
    def get_by_id(self, pto_type_id: int) -> Optional[PtoType]:
        raise NotImplementedError

    def list_all(self, *, active_only: bool = False) -> Sequence[PtoType]:
        raise NotImplementedError

    def create(self, pto_type: PtoType) -> int:
        raise NotImplementedError

    def update(self, pto_type: PtoType) -> bool:
        raise NotImplementedError


class PtoBalanceRepository(Protocol):
    """Balances and the transaction ledger that explains them."""

    def get(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        raise NotImplementedError

    def get_by_id(self, balance_id: int) -> Optional[PtoBalance]:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int, year: Optional[int] = None) -> Sequence[PtoBalance]:
        raise NotImplementedError

    def list_for_year(self, year: int) -> Sequence[PtoBalance]:
        raise NotImplementedError

    def create(self, *, user_id: int, pto_type_id: int, year: int, balance: float) -> int:
        raise NotImplementedError

    def shift_amounts(
        self,
        balance_id: int,
        *,
        pending: float = 0.0,
        used: float = 0.0,
        require_available: Optional[float] = None,
    ) -> bool:
        """Add `pending`/`used` to the stored amounts (floored at zero) in one write.

        With `require_available`, the write only happens while at least that
        much is still available; returns False when it did not happen.
        """
        raise NotImplementedError

    def set_balance(self, balance_id: int, balance: float) -> bool:
        raise NotImplementedError

    def add_transaction(
        self,
        *,
        year: int,
        user_id: int,
        pto_type_id: int,
        pto_request_id: Optional[int],
        amount: float,
        balance_before: float,
        balance_after: float,
        type: TransactionType,
        description: str,
        created_by: Optional[int],
    ) -> int:
        """Insert a ledger entry numbered with the next TXN-<year>-<seq> in the same transaction."""
        raise NotImplementedError

    def list_transactions(self, *, user_id: int, limit: int = 200) -> Sequence[PtoTransaction]:
        raise NotImplementedError


class PtoRequestRepository(Protocol):
    def create(
        self,
        *,
        request_number: str,
        user_id: int,
        pto_type_id: int,
        start_date: date,
        end_date: date,
        start_time: str,
        end_time: str,
        total_days: float,
        reason: Optional[str],
        is_emergency: bool,
        blackout_summary: Optional[dict],
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[PtoRequest]:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int, limit: int = 200) -> Sequence[PtoRequest]:
        raise NotImplementedError

    def list_by_status(
        self,
        *,
        status: PtoStatus,
        user_ids: Optional[Iterable[int]] = None,
        limit: int = 500,
    ) -> Sequence[PtoRequest]:
        raise NotImplementedError

    def list_active_overlapping(self, *, start_date: date, end_date: date) -> Sequence[PtoRequest]:
        """Pending and approved requests that touch [start_date, end_date]."""
        raise NotImplementedError

    def transition(
        self,
        request_id: int,
        *,
        expected: PtoStatus,
        status: PtoStatus,
        decided_by: Optional[int],
        comment: Optional[str] = None,
    ) -> bool:
        """Move a request from `expected` to `status`; False if it was no longer `expected`."""
        raise NotImplementedError

    def count_by_status(self, *, year: Optional[int] = None) -> dict[str, int]:
        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        statuses: Sequence[PtoStatus],
        dept_id: Optional[int] = None,
        user_id: Optional[int] = None,
        calendar_only: bool = False,
    ) -> Sequence[PtoReportRow]:
        raise NotImplementedError


class BlackoutRepository(Protocol):
    def get_by_id(self, blackout_id: int) -> Optional[PtoBlackout]:
        raise NotImplementedError

    def list_active(self) -> Sequence[PtoBlackout]:
        raise NotImplementedError

    def list_all(self) -> Sequence[PtoBlackout]:
        raise NotImplementedError

    def create(self, blackout: PtoBlackout) -> int:
        raise NotImplementedError

    def update(self, blackout: PtoBlackout) -> bool:
        raise NotImplementedError


class HolidayRepository(Protocol):
    def list_in_range(self, *, start_date: date, end_date: date) -> Sequence[Holiday]:
        raise NotImplementedError

    def list_for_year(self, year: int) -> Sequence[Holiday]:
        raise NotImplementedError

    def create(self, *, name: str, holiday_date: date) -> int:
        raise NotImplementedError

    def delete_by_id(self, holiday_id: int) -> bool:
        raise NotImplementedError
