from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .blackouts.factory import BlackoutRestrictionFactory
from .blackouts.mysql_blackout_repository import MySQLBlackoutRepository
from .blackouts.service import BlackoutService
from .blackouts.validation import BlackoutValidationService
from .database.connection import DBConfig, DatabaseConnection
from .organization.mysql_organization_repository import (
    MySQLDepartmentRepository,
    MySQLHolidayRepository,
    MySQLPositionRepository,
)
from .organization.service import DepartmentService, HolidayService, PositionService
from .pto_balances.mysql_pto_balance_repository import MySQLPtoBalanceRepository, MySQLPtoTransactionRepository
from .pto_balances.service import PtoBalanceService
from .pto_policies.mysql_pto_policy_repository import MySQLPtoPolicyRepository
from .pto_policies.service import PtoPolicyService
from .pto_requests.mysql_pto_request_repository import MySQLPtoApprovalRepository, MySQLPtoRequestRepository
from .pto_requests.service import PtoApprovalService, PtoRequestService
from .pto_types.mysql_pto_type_repository import MySQLPtoTypeRepository
from .pto_types.service import PtoTypeService
from .route_permissions.mysql_route_permission_repository import MySQLRoutePermissionRepository
from .route_permissions.service import RoutePermissionService
from .timesheets.calculator.weekly_overtime_calculator import WeeklyOvertimeCalculator
from .timesheets.mysql_timesheet_repository import MySQLTimeEntryRepository, MySQLTimesheetRepository
from .timesheets.service import TimesheetService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    auth_service: AuthService
    user_service: UserService
    position_service: PositionService
    department_service: DepartmentService
    holiday_service: HolidayService
    pto_type_service: PtoTypeService
    pto_balance_service: PtoBalanceService
    pto_policy_service: PtoPolicyService
    blackout_validation_service: BlackoutValidationService
    blackout_service: BlackoutService
    pto_request_service: PtoRequestService
    pto_approval_service: PtoApprovalService
    timesheet_service: TimesheetService
    route_permission_service: RoutePermissionService


def build_container(*, db_config: dict, super_admin_email: Optional[str] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    users_repo = MySQLUserRepository(conn)
    positions_repo = MySQLPositionRepository(conn)
    departments_repo = MySQLDepartmentRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    types_repo = MySQLPtoTypeRepository(conn)
    balances_repo = MySQLPtoBalanceRepository(conn)
    transactions_repo = MySQLPtoTransactionRepository(conn)
    policies_repo = MySQLPtoPolicyRepository(conn)
    blackouts_repo = MySQLBlackoutRepository(conn)
    requests_repo = MySQLPtoRequestRepository(conn)
    approvals_repo = MySQLPtoApprovalRepository(conn)
    entries_repo = MySQLTimeEntryRepository(conn)
    timesheets_repo = MySQLTimesheetRepository(conn)
    routes_repo = MySQLRoutePermissionRepository(conn)

    balance_service = PtoBalanceService(balances_repo, transactions_repo, types_repo, users_repo, policies_repo)
    validation = BlackoutValidationService(
        blackouts=blackouts_repo,
        requests=requests_repo,
        holidays=holidays_repo,
        users=users_repo,
        types=types_repo,
        positions=positions_repo,
        departments=departments_repo,
        factory=BlackoutRestrictionFactory(),
    )
    pto_deps = (requests_repo, approvals_repo, types_repo, users_repo, balance_service, validation)

    return Container(
        conn=conn,
        auth_service=AuthService(users_repo, super_admin_email=super_admin_email),
        user_service=UserService(users_repo),
        position_service=PositionService(positions_repo),
        department_service=DepartmentService(departments_repo, users_repo),
        holiday_service=HolidayService(holidays_repo),
        pto_type_service=PtoTypeService(types_repo, users_repo),
        pto_balance_service=balance_service,
        pto_policy_service=PtoPolicyService(policies_repo, types_repo, users_repo, balances_repo, balance_service),
        blackout_validation_service=validation,
        blackout_service=BlackoutService(
            blackouts_repo, users_repo, types_repo, positions_repo, departments_repo, validation
        ),
        pto_request_service=PtoRequestService(*pto_deps),
        pto_approval_service=PtoApprovalService(*pto_deps),
        timesheet_service=TimesheetService(
            entries_repo, timesheets_repo, requests_repo, types_repo, calculator=WeeklyOvertimeCalculator()
        ),
        route_permission_service=RoutePermissionService(routes_repo),
    )
