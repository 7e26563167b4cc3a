from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .attendance.factory import AttendanceStrategyFactory
from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.scheduler import AutoCheckoutScheduler
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_AUTO_CHECKOUT_INTERVAL_MINUTES, DEFAULT_CAS_RETRIES, DEFAULT_NOTIFICATION_WORKERS
from .core.enums import ApprovalLevel
from .database.connection import DBConfig, DatabaseConnection
from .notifications.dispatcher import BackgroundNotifier, LoggingNotificationDispatcher, NotificationDispatcher
from .permissions.memory_permission_repository import InMemoryPermissionRepository
from .permissions.mysql_permission_repository import MySQLPermissionRepository
from .permissions.repository import PermissionRepository
from .permissions.service import PermissionService
from .policy.memory_policy_repository import InMemoryPolicyRepository
from .policy.model import WorkHourPolicy
from .policy.mysql_policy_repository import MySQLPolicyRepository
from .policy.repository import PolicyRepository
from .policy.service import PolicyService
from .regularization.applier import RegularizationApplier
from .regularization.memory_regularization_repository import InMemoryRegularizationRepository
from .regularization.mysql_regularization_repository import MySQLRegularizationRepository
from .regularization.repository import RegularizationRepository
from .regularization.service import RegularizationService
from .workflow.engine import ApprovalWorkflow
from .workflow.model import WorkflowDefinition

REGULARIZATION_LEVELS = (ApprovalLevel.TEAM_MANAGER, ApprovalLevel.HR, ApprovalLevel.VP_ADMIN)
PERMISSION_LEVELS = (ApprovalLevel.TEAM_LEADER, ApprovalLevel.TEAM_MANAGER, ApprovalLevel.HR)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    policy_repo: PolicyRepository
    attendance_repo: AttendanceRepository
    regularization_repo: RegularizationRepository
    permission_repo: PermissionRepository

    notifier: BackgroundNotifier
    policy_service: PolicyService
    attendance_service: AttendanceService
    regularization_service: RegularizationService
    permission_service: PermissionService
    auto_checkout_scheduler: AutoCheckoutScheduler


def regularization_definition(
    levels: Optional[Sequence[str]] = None,
    approvals_required: Optional[int] = 1,
) -> WorkflowDefinition:
    parsed = tuple(ApprovalLevel(v) for v in levels) if levels else REGULARIZATION_LEVELS
    return WorkflowDefinition(name="regularization", levels=parsed, approvals_required=approvals_required)


def permission_definition() -> WorkflowDefinition:
    return WorkflowDefinition(name="permission", levels=PERMISSION_LEVELS, approvals_required=None)


def build_container(
    *,
    db_config: Optional[dict] = None,
    storage_backend: str = "mysql",
    work_hour_defaults: Optional[Mapping[str, Any]] = None,
    regularization_levels: Optional[Sequence[str]] = None,
    regularization_approvals_required: Optional[int] = 1,
    auto_checkout_interval_minutes: int = DEFAULT_AUTO_CHECKOUT_INTERVAL_MINUTES,
    notification_workers: int = DEFAULT_NOTIFICATION_WORKERS,
    max_cas_retries: int = DEFAULT_CAS_RETRIES,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if storage_backend == "memory":
        policy_repo = InMemoryPolicyRepository()
        attendance_repo = InMemoryAttendanceRepository()
        regularization_repo = InMemoryRegularizationRepository()
        permission_repo = InMemoryPermissionRepository()
    elif storage_backend == "mysql":
        if not db_config:
            raise ValueError("DB_CONFIG is required for the mysql storage backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
        policy_repo = MySQLPolicyRepository(conn)
        attendance_repo = MySQLAttendanceRepository(conn)
        regularization_repo = MySQLRegularizationRepository(conn)
        permission_repo = MySQLPermissionRepository(conn)
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {storage_backend!r}")

    executor = ThreadPoolExecutor(max_workers=int(notification_workers), thread_name_prefix="notify") if notification_workers > 0 else None
    notifier = BackgroundNotifier(dispatcher or LoggingNotificationDispatcher(), executor=executor)

    strategy_factory = AttendanceStrategyFactory()
    policy_service = PolicyService(policy_repo, defaults=WorkHourPolicy.from_mapping(work_hour_defaults or {}))
    attendance_service = AttendanceService(
        attendance_repo,
        policy_service,
        notifier=notifier,
        strategy_factory=strategy_factory,
        max_retries=max_cas_retries,
    )
    regularization_service = RegularizationService(
        regularization_repo,
        attendance_service,
        ApprovalWorkflow(regularization_definition(regularization_levels, regularization_approvals_required)),
        applier=RegularizationApplier(strategy_factory=strategy_factory),
        notifier=notifier,
    )
    permission_service = PermissionService(
        permission_repo,
        ApprovalWorkflow(permission_definition()),
        notifier=notifier,
    )
    scheduler = AutoCheckoutScheduler(attendance_service, interval_minutes=auto_checkout_interval_minutes)

    return Container(
        conn=conn,
        policy_repo=policy_repo,
        attendance_repo=attendance_repo,
        regularization_repo=regularization_repo,
        permission_repo=permission_repo,
        notifier=notifier,
        policy_service=policy_service,
        attendance_service=attendance_service,
        regularization_service=regularization_service,
        permission_service=permission_service,
        auto_checkout_scheduler=scheduler,
    )
