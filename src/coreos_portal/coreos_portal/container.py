from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .core.constants import DEFAULT_MAX_UPLOAD_MB, DEFAULT_UPLOAD_TTL_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationService
from .parts.mysql_part_repository import MySQLPartRepository
from .parts.service import PartsCatalogService
from .pto.admin_service import PtoAdminService
from .pto.balance_service import PtoBalanceService
from .pto.blackouts.validator import BlackoutValidator
from .pto.mysql_balance_repository import MySQLPtoBalanceRepository
from .pto.mysql_blackout_repository import MySQLBlackoutRepository, MySQLHolidayRepository
from .pto.mysql_request_repository import MySQLPtoRequestRepository
from .pto.mysql_type_repository import MySQLPtoTypeRepository
from .pto.service import PtoRequestService
from .reports.service import PtoReportService
from .users.mysql_department_repository import MySQLDepartmentRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService
from .warehouse.service import ContainerExpanderService
from .warehouse.storage import UploadStore


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    departments_repo: MySQLDepartmentRepository
    pto_types_repo: MySQLPtoTypeRepository
    pto_balances_repo: MySQLPtoBalanceRepository
    pto_requests_repo: MySQLPtoRequestRepository
    blackouts_repo: MySQLBlackoutRepository
    holidays_repo: MySQLHolidayRepository
    notifications_repo: MySQLNotificationRepository
    parts_repo: MySQLPartRepository

    auth_service: AuthService
    user_service: UserService
    notification_service: NotificationService
    pto_balance_service: PtoBalanceService
    pto_request_service: PtoRequestService
    pto_admin_service: PtoAdminService
    pto_report_service: PtoReportService
    container_expander_service: ContainerExpanderService
    parts_catalog_service: PartsCatalogService


def build_container(
    *,
    db_config: dict,
    upload_dir: str | Path = "uploads",
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB,
    upload_ttl_hours: float = DEFAULT_UPLOAD_TTL_HOURS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    departments_repo = MySQLDepartmentRepository(conn)
    pto_types_repo = MySQLPtoTypeRepository(conn)
    pto_balances_repo = MySQLPtoBalanceRepository(conn)
    pto_requests_repo = MySQLPtoRequestRepository(conn)
    blackouts_repo = MySQLBlackoutRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    notifications_repo = MySQLNotificationRepository(conn)
    parts_repo = MySQLPartRepository(conn)

    auth_service = AuthService(users_repo)
    user_service = UserService(users_repo)
    notification_service = NotificationService(notifications_repo, users_repo)
    pto_balance_service = PtoBalanceService(pto_balances_repo, pto_types_repo)
    validator = BlackoutValidator(blackouts_repo, holidays_repo, pto_requests_repo, users_repo)
    pto_request_service = PtoRequestService(
        pto_requests_repo,
        pto_types_repo,
        pto_balance_service,
        users_repo,
        validator,
        notification_service,
    )
    pto_admin_service = PtoAdminService(pto_types_repo, blackouts_repo, holidays_repo)
    pto_report_service = PtoReportService(
        pto_requests_repo, pto_balances_repo, pto_types_repo, blackouts_repo, users_repo
    )
    store = UploadStore(Path(upload_dir) / "container_expander", ttl_hours=upload_ttl_hours)
    container_expander_service = ContainerExpanderService(store, max_upload_mb=max_upload_mb)
    parts_catalog_service = PartsCatalogService(parts_repo, max_upload_mb=max_upload_mb)

    return Container(
        conn=conn,
        users_repo=users_repo,
        departments_repo=departments_repo,
        pto_types_repo=pto_types_repo,
        pto_balances_repo=pto_balances_repo,
        pto_requests_repo=pto_requests_repo,
        blackouts_repo=blackouts_repo,
        holidays_repo=holidays_repo,
        notifications_repo=notifications_repo,
        parts_repo=parts_repo,
        auth_service=auth_service,
        user_service=user_service,
        notification_service=notification_service,
        pto_balance_service=pto_balance_service,
        pto_request_service=pto_request_service,
        pto_admin_service=pto_admin_service,
        pto_report_service=pto_report_service,
        container_expander_service=container_expander_service,
        parts_catalog_service=parts_catalog_service,
    )
