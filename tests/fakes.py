from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from src.coreos.coreos.blackouts.factory import BlackoutRestrictionFactory
from src.coreos.coreos.blackouts.model import PtoBlackout
from src.coreos.coreos.blackouts.validation import BlackoutValidationService
from src.coreos.coreos.core.enums import ApprovalStatus, RequestStatus, TimesheetStatus
from src.coreos.coreos.organization.model import Department, Holiday, Position
from src.coreos.coreos.pto_balances.model import PtoBalance, PtoTransaction
from src.coreos.coreos.pto_balances.service import PtoBalanceService
from src.coreos.coreos.pto_policies.model import PtoPolicy
from src.coreos.coreos.pto_requests.model import PtoApproval, PtoRequest
from src.coreos.coreos.pto_requests.service import PtoApprovalService, PtoRequestService
from src.coreos.coreos.pto_types.model import PtoType, PtoTypeUsage
from src.coreos.coreos.route_permissions.model import RoutePermission, RouteStats
from src.coreos.coreos.timesheets.model import TimeEntry, Timesheet, TimesheetAction
from src.coreos.coreos.users.model import User

_ACTIVE = (RequestStatus.APPROVED, RequestStatus.PENDING)


class FakeUsersRepo:
    def __init__(self, users: Sequence[User] = ()):
        self._users = {u.user_id: u for u in users}
        self._next_id = max(self._users, default=0) + 1

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self._users.values() if u.email.lower() == email.lower()), None)

    def list_by_ids(self, user_ids):
        return [self._users[i] for i in user_ids if i in self._users]

    def list_all(self, *, active_only=True):
        return [u for u in self._users.values() if u.is_active or not active_only]

    def create_user(self, *, name, email, password_hash, position_id, manager_id, start_date):
        user_id = self._next_id
        self._next_id += 1
        self._users[user_id] = User(
            user_id=user_id,
            name=name,
            email=email,
            password_hash=password_hash,
            position_id=position_id,
            manager_id=manager_id,
            start_date=start_date,
        )
        return user_id

    def set_active(self, user_id, *, is_active):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, is_active=is_active)
        return True


class FakePositionsRepo:
    def __init__(self, positions: Sequence[Position] = (), assigned: Optional[dict[int, int]] = None):
        self._positions = {p.position_id: p for p in positions}
        self.assigned = dict(assigned or {})
        self.detached: list[int] = []

    def list_all(self):
        return sorted(self._positions.values(), key=lambda p: p.name)

    def get_by_id(self, position_id):
        return self._positions.get(int(position_id))

    def get_by_name(self, name):
        return next((p for p in self._positions.values() if p.name == name), None)

    def create(self, *, name, description):
        position_id = max(self._positions, default=0) + 1
        self._positions[position_id] = Position(position_id=position_id, name=name, description=description)
        return position_id

    def update(self, position):
        self._positions[position.position_id] = position
        return True

    def delete(self, position_id):
        return self._positions.pop(int(position_id), None) is not None

    def count_assigned_users(self, position_id):
        return self.assigned.get(int(position_id), 0)

    def detach_users(self, position_id):
        self.detached.append(int(position_id))
        return self.assigned.pop(int(position_id), 0)


class FakeDepartmentsRepo:
    def __init__(self, departments: Sequence[Department] = ()):
        self._departments = {d.dept_id: d for d in departments}
        self._members: dict[int, set[int]] = {}

    def list_all(self, *, active_only=False):
        return [d for d in self._departments.values() if d.is_active or not active_only]

    def get_by_id(self, dept_id):
        return self._departments.get(int(dept_id))

    def get_by_name(self, name):
        return next((d for d in self._departments.values() if d.name == name), None)

    def create(self, *, name, description, is_active, manager_id):
        dept_id = max(self._departments, default=0) + 1
        self._departments[dept_id] = Department(
            dept_id=dept_id, name=name, description=description, is_active=is_active, manager_id=manager_id
        )
        return dept_id

    def update(self, dept):
        self._departments[dept.dept_id] = dept
        return True

    def delete(self, dept_id):
        return self._departments.pop(int(dept_id), None) is not None

    def add_user(self, *, dept_id, user_id):
        members = self._members.setdefault(dept_id, set())
        if user_id in members:
            return False
        members.add(user_id)
        return True

    def remove_user(self, *, dept_id, user_id):
        members = self._members.get(dept_id, set())
        if user_id not in members:
            return False
        members.discard(user_id)
        return True

    def list_user_ids(self, dept_id):
        return sorted(self._members.get(dept_id, set()))


class FakeHolidaysRepo:
    def __init__(self, holidays: Sequence[Holiday] = ()):
        self._holidays = list(holidays)

    def list_between(self, start, end, *, active_only=True):
        return [h for h in self._holidays if start <= h.holiday_date <= end and (h.is_active or not active_only)]

    def create(self, *, name, holiday_date, is_active=True):
        holiday_id = len(self._holidays) + 1
        self._holidays.append(Holiday(holiday_id=holiday_id, name=name, holiday_date=holiday_date, is_active=is_active))
        return holiday_id

    def delete(self, holiday_id):
        before = len(self._holidays)
        self._holidays = [h for h in self._holidays if h.holiday_id != int(holiday_id)]
        return len(self._holidays) < before


class FakeTypesRepo:
    def __init__(self, types: Sequence[PtoType] = (), usage: Optional[dict[int, PtoTypeUsage]] = None):
        self._types = {t.pto_type_id: t for t in types}
        self._usage = dict(usage or {})

    def list_types(self, *, active_only=False, search=None):
        found = [t for t in self._types.values() if t.is_active or not active_only]
        if search:
            found = [t for t in found if search.lower() in t.name.lower() or search.lower() in t.code.lower()]
        return sorted(found, key=lambda t: (t.sort_order, t.name))

    def get_by_id(self, pto_type_id):
        return self._types.get(int(pto_type_id))

    def get_by_name(self, name):
        return next((t for t in self._types.values() if t.name == name), None)

    def code_exists(self, code, *, ignore_id=None):
        return any(t.code == code and t.pto_type_id != ignore_id for t in self._types.values())

    def max_sort_order(self):
        return max((t.sort_order for t in self._types.values()), default=None)

    def create(self, pto_type):
        pto_type_id = max(self._types, default=0) + 1
        self._types[pto_type_id] = replace(pto_type, pto_type_id=pto_type_id)
        return pto_type_id

    def update(self, pto_type):
        self._types[pto_type.pto_type_id] = pto_type

    def delete(self, pto_type_id):
        return self._types.pop(int(pto_type_id), None) is not None

    def usage(self, pto_type_id):
        return self._usage.get(int(pto_type_id), PtoTypeUsage())

    def set_sort_orders(self, orders):
        for pto_type_id, sort_order in orders:
            self._types[pto_type_id] = replace(self._types[pto_type_id], sort_order=sort_order)


class FakeBalancesRepo:
    def __init__(self, balances: Sequence[PtoBalance] = ()):
        self._balances = {b.balance_id: b for b in balances}

    def get_by_id(self, balance_id):
        return self._balances.get(int(balance_id))

    def get_for(self, *, user_id, pto_type_id, year):
        return next(
            (
                b
                for b in self._balances.values()
                if b.user_id == user_id and b.pto_type_id == pto_type_id and b.year == year
            ),
            None,
        )

    def list_balances(self, *, year=None, user_id=None, pto_type_id=None):
        return [
            b
            for b in self._balances.values()
            if (year is None or b.year == year)
            and (user_id is None or b.user_id == user_id)
            and (pto_type_id is None or b.pto_type_id == pto_type_id)
        ]

    def create(self, balance):
        balance_id = max(self._balances, default=0) + 1
        self._balances[balance_id] = replace(balance, balance_id=balance_id)
        return balance_id

    def save(self, balance):
        self._balances[balance.balance_id] = balance

    def delete(self, balance_id):
        return self._balances.pop(int(balance_id), None) is not None

    def delete_for(self, *, user_id, pto_type_id):
        doomed = [k for k, b in self._balances.items() if b.user_id == user_id and b.pto_type_id == pto_type_id]
        for k in doomed:
            del self._balances[k]
        return len(doomed)


class FakeTransactionsRepo:
    def __init__(self):
        self.items: list[PtoTransaction] = []

    def count_for_year(self, year):
        return sum(1 for t in self.items if t.effective_date.year == year)

    def create(self, txn):
        txn_id = len(self.items) + 1
        self.items.append(replace(txn, transaction_id=txn_id))
        return txn_id

    def list_transactions(self, *, user_id=None, pto_type_id=None, limit=50):
        found = [
            t
            for t in self.items
            if (user_id is None or t.user_id == user_id) and (pto_type_id is None or t.pto_type_id == pto_type_id)
        ]
        return list(reversed(found))[:limit]


class FakePoliciesRepo:
    def __init__(self, policies: Sequence[PtoPolicy] = ()):
        self._policies = {p.policy_id: p for p in policies}

    def list_policies(self, *, user_id=None, pto_type_id=None, active_only=False):
        return [
            p
            for p in self._policies.values()
            if (user_id is None or p.user_id == user_id)
            and (pto_type_id is None or p.pto_type_id == pto_type_id)
            and (p.is_active or not active_only)
        ]

    def get_by_id(self, policy_id):
        return self._policies.get(int(policy_id))

    def get_for_user_and_type(self, *, user_id, pto_type_id):
        return next(
            (p for p in self._policies.values() if p.user_id == user_id and p.pto_type_id == pto_type_id), None
        )

    def create(self, policy):
        policy_id = max(self._policies, default=0) + 1
        self._policies[policy_id] = replace(policy, policy_id=policy_id)
        return policy_id

    def update(self, policy):
        self._policies[policy.policy_id] = policy

    def delete(self, policy_id):
        return self._policies.pop(int(policy_id), None) is not None


class FakeRequestsRepo:
    def __init__(self, users: Optional[FakeUsersRepo] = None, requests: Sequence[PtoRequest] = ()):
        self._users = users or FakeUsersRepo()
        self._requests = {r.request_id: r for r in requests}

    def all(self):
        return list(self._requests.values())

    def get_by_id(self, request_id):
        return self._requests.get(int(request_id))

    def list_requests(self, *, user_id=None, status=None, pto_type_id=None, search=None, limit=200):
        return [
            r
            for r in self._requests.values()
            if (user_id is None or r.user_id == user_id)
            and (status is None or r.status == status)
            and (pto_type_id is None or r.pto_type_id == pto_type_id)
        ][:limit]

    def _active(self, pto_type_ids, exclude_request_id):
        return [
            r
            for r in self._requests.values()
            if r.status in _ACTIVE
            and (not pto_type_ids or r.pto_type_id in pto_type_ids)
            and r.request_id != exclude_request_id
        ]

    def list_in_period(self, start, end, *, statuses, pto_type_ids=(), exclude_request_id=None, limit=10):
        found = [
            r
            for r in self._requests.values()
            if r.start_date <= end
            and r.end_date >= start
            and r.status in statuses
            and (not pto_type_ids or r.pto_type_id in pto_type_ids)
            and r.request_id != exclude_request_id
        ]
        return sorted(found, key=lambda r: r.request_id, reverse=True)[:limit]

    def list_approved_overlapping(self, user_id, start, end):
        return [
            r
            for r in self._requests.values()
            if r.user_id == user_id and r.status == RequestStatus.APPROVED and r.start_date <= end and r.end_date >= start
        ]

    def sum_pending_days(self, *, user_id, pto_type_id, year, exclude_request_id=None):
        return sum(
            (
                r.total_days
                for r in self._requests.values()
                if r.user_id == user_id
                and r.pto_type_id == pto_type_id
                and r.status == RequestStatus.PENDING
                and r.start_date.year == year
                and r.request_id != exclude_request_id
            ),
            Decimal("0"),
        )

    def count_active_in_period(
        self, start, end, *, user_ids=None, position_id=None, department_ids=(), pto_type_ids=(), exclude_request_id=None
    ):
        count = 0
        for r in self._active(pto_type_ids, exclude_request_id):
            if r.start_date > end or r.end_date < start:
                continue
            if user_ids or position_id or department_ids:
                user = self._users.get_by_id(r.user_id)
                in_scope = (
                    (user_ids and r.user_id in user_ids)
                    or (position_id and user and user.position_id == position_id)
                    or (department_ids and user and set(user.department_ids) & set(department_ids))
                )
                if not in_scope:
                    continue
            count += 1
        return count

    def list_active_request_dates(self, *, pto_type_ids=(), exclude_request_id=None):
        return [(r.start_date, r.end_date) for r in self._active(pto_type_ids, exclude_request_id)]

    def create(self, request):
        request_id = max(self._requests, default=0) + 1
        self._requests[request_id] = replace(request, request_id=request_id)
        return request_id

    def save(self, request):
        self._requests[request.request_id] = request

    def delete(self, request_id):
        return self._requests.pop(int(request_id), None) is not None


class FakeApprovalsRepo:
    def __init__(self):
        self._rows: dict[tuple[int, int], PtoApproval] = {}

    def list_for_request(self, request_id):
        rows = [a for a in self._rows.values() if a.pto_request_id == request_id]
        return sorted(rows, key=lambda a: a.level)

    def get_for(self, *, request_id, approver_id):
        return self._rows.get((request_id, approver_id))

    def upsert(self, *, request_id, approver_id, status, comments, responded_at, level=1):
        existing = self._rows.get((request_id, approver_id))
        if existing:
            self._rows[(request_id, approver_id)] = replace(
                existing, status=status, comments=comments, responded_at=responded_at
            )
            return
        self._rows[(request_id, approver_id)] = PtoApproval(
            approval_id=len(self._rows) + 1,
            pto_request_id=request_id,
            approver_id=approver_id,
            status=status,
            comments=comments,
            level=level,
            responded_at=responded_at,
        )

    def delete_pending_for_request(self, request_id):
        doomed = [
            k for k, a in self._rows.items() if a.pto_request_id == request_id and a.status == ApprovalStatus.PENDING
        ]
        for k in doomed:
            del self._rows[k]
        return len(doomed)

    def list_pending_for_approver(self, approver_id):
        return [a for a in self._rows.values() if a.approver_id == approver_id and a.status == ApprovalStatus.PENDING]

    def list_by_approver(self, approver_id, *, limit=50):
        return [a for a in self._rows.values() if a.approver_id == approver_id][:limit]


class FakeBlackoutsRepo:
    def __init__(self, blackouts: Sequence[PtoBlackout] = ()):
        self._blackouts = {b.blackout_id: b for b in blackouts}

    def list_blackouts(self, *, active_only=False):
        return [b for b in self._blackouts.values() if b.is_active or not active_only]

    def list_active_overlapping(self, start, end):
        return [
            b
            for b in self._blackouts.values()
            if b.is_active and not b.is_recurring and b.start_date <= end and b.end_date >= start
        ]

    def list_active_recurring(self):
        return [b for b in self._blackouts.values() if b.is_active and b.is_recurring]

    def get_by_id(self, blackout_id):
        return self._blackouts.get(int(blackout_id))

    def create(self, blackout):
        blackout_id = max(self._blackouts, default=0) + 1
        self._blackouts[blackout_id] = replace(blackout, blackout_id=blackout_id)
        return blackout_id

    def update(self, blackout):
        self._blackouts[blackout.blackout_id] = blackout

    def delete(self, blackout_id):
        return self._blackouts.pop(int(blackout_id), None) is not None


class FakeTimeEntriesRepo:
    def __init__(self, entries: Sequence[TimeEntry] = ()):
        self._entries = {e.entry_id: e for e in entries}

    def list_for_user_between(self, user_id, start: datetime, end: datetime):
        return sorted(
            (e for e in self._entries.values() if e.user_id == user_id and start <= e.clock_in_time <= end),
            key=lambda e: e.clock_in_time,
        )

    def get_active_for_user(self, user_id):
        return next((e for e in self._entries.values() if e.user_id == user_id and e.is_active), None)

    def create(self, *, user_id, clock_in_time):
        entry_id = max(self._entries, default=0) + 1
        self._entries[entry_id] = TimeEntry(entry_id=entry_id, user_id=user_id, clock_in_time=clock_in_time)
        return entry_id

    def close(self, entry_id, *, clock_out_time, break_minutes):
        self._entries[entry_id] = replace(
            self._entries[entry_id], clock_out_time=clock_out_time, break_minutes=break_minutes, status="completed"
        )


class FakeTimesheetsRepo:
    def __init__(self, timesheets: Sequence[Timesheet] = ()):
        self._timesheets = {t.timesheet_id: t for t in timesheets}
        self.actions: list[TimesheetAction] = []

    def get_by_id(self, timesheet_id):
        return self._timesheets.get(int(timesheet_id))

    def get_for_week(self, user_id, week_start: date):
        return next(
            (t for t in self._timesheets.values() if t.user_id == user_id and t.week_start_date == week_start), None
        )

    def list_by_status(self, status: TimesheetStatus, *, limit=200):
        return [t for t in self._timesheets.values() if t.status == status][:limit]

    def create(self, timesheet):
        timesheet_id = max(self._timesheets, default=0) + 1
        self._timesheets[timesheet_id] = replace(timesheet, timesheet_id=timesheet_id)
        return timesheet_id

    def save(self, timesheet):
        self._timesheets[timesheet.timesheet_id] = timesheet

    def add_action(self, action):
        self.actions.append(replace(action, action_id=len(self.actions) + 1))
        return len(self.actions)

    def list_actions(self, timesheet_id):
        return [a for a in self.actions if a.timesheet_id == timesheet_id]


class PtoStack:
    """Request, approval and balance services wired to in-memory repositories."""

    def __init__(
        self,
        *,
        users: Sequence[User],
        types: Sequence[PtoType],
        balances: Sequence[PtoBalance] = (),
        policies: Sequence[PtoPolicy] = (),
        blackouts: Sequence[PtoBlackout] = (),
        holidays: Sequence[Holiday] = (),
        positions: Sequence[Position] = (),
        departments: Sequence[Department] = (),
        type_usage: Optional[dict[int, PtoTypeUsage]] = None,
    ):
        self.users = FakeUsersRepo(users)
        self.types = FakeTypesRepo(types, usage=type_usage)
        self.balances = FakeBalancesRepo(balances)
        self.transactions = FakeTransactionsRepo()
        self.policies = FakePoliciesRepo(policies)
        self.requests = FakeRequestsRepo(self.users)
        self.approvals = FakeApprovalsRepo()
        self.blackouts = FakeBlackoutsRepo(blackouts)
        self.holidays = FakeHolidaysRepo(holidays)
        self.positions = FakePositionsRepo(positions)
        self.departments = FakeDepartmentsRepo(departments)

        self.balance_service = PtoBalanceService(
            self.balances, self.transactions, self.types, self.users, self.policies
        )
        self.validation = BlackoutValidationService(
            blackouts=self.blackouts,
            requests=self.requests,
            holidays=self.holidays,
            users=self.users,
            types=self.types,
            positions=self.positions,
            departments=self.departments,
            factory=BlackoutRestrictionFactory(),
        )
        deps = (self.requests, self.approvals, self.types, self.users, self.balance_service, self.validation)
        self.request_service = PtoRequestService(*deps)
        self.approval_service = PtoApprovalService(*deps)

    def balance(self, user_id: int, pto_type_id: int, year: int) -> PtoBalance:
        return self.balances.get_for(user_id=user_id, pto_type_id=pto_type_id, year=year)


ROUTE_PERMISSIONS = {"pto.manage": 1, "hr.access": 2, "timesheets.manage": 3, "admin.access": 4}
ROUTE_ROLES = {"HR Manager": 1, "Administrator": 2}


class FakeRoutesRepo:
    def __init__(self, routes=()):
        self._routes = {r.route_permission_id: r for r in routes}

    def get_by_id(self, route_permission_id):
        return self._routes.get(int(route_permission_id))

    def get_by_name(self, route_name):
        return next((r for r in self._routes.values() if r.route_name == route_name), None)

    def list_routes(self, *, active_only=True, group_name=None, missing_display_name=False):
        found = [
            r
            for r in self._routes.values()
            if (r.is_active or not active_only)
            and (group_name is None or r.group_name == group_name)
            and (not missing_display_name or not r.stored_display_name)
        ]
        return sorted(found, key=lambda r: (r.group_name, r.route_name))

    def group_counts(self):
        counts = {}
        for r in self._routes.values():
            if r.is_active:
                counts[r.group_name] = counts.get(r.group_name, 0) + 1
        return sorted(counts.items())

    def create(self, route):
        route_permission_id = max(self._routes, default=0) + 1
        self._routes[route_permission_id] = RoutePermission(
            route_permission_id=route_permission_id,
            route_name=route.route_name,
            route_uri=route.route_uri,
            route_methods=route.route_methods,
            group_name=route.group_name,
            description=route.description,
            is_protected=route.is_protected,
        )
        return route_permission_id

    def refresh(self, route_permission_id, route):
        self._routes[route_permission_id] = replace(
            self._routes[route_permission_id],
            route_uri=route.route_uri,
            route_methods=route.route_methods,
            group_name=route.group_name,
            is_active=True,
        )

    def deactivate_missing(self, route_names):
        count = 0
        for key, r in list(self._routes.items()):
            if r.is_active and r.route_name not in route_names:
                self._routes[key] = replace(r, is_active=False)
                count += 1
        return count

    def set_display_name(self, route_permission_id, display_name):
        self._routes[route_permission_id] = replace(
            self._routes[route_permission_id], stored_display_name=display_name
        )

    def update_access(self, route_permission_id, *, is_protected=None, description=None):
        route = self._routes[route_permission_id]
        if is_protected is not None:
            route = replace(route, is_protected=is_protected)
        if description is not None:
            route = replace(route, description=description)
        self._routes[route_permission_id] = route

    def _attach(self, route_permission_id, field, names, detach):
        route = self._routes[route_permission_id]
        current = () if detach else getattr(route, field)
        merged = tuple(dict.fromkeys((*current, *names)))
        self._routes[route_permission_id] = replace(route, **{field: merged})

    def sync_permissions(self, route_permission_id, permission_ids, *, detach=True):
        names = [n for n, i in ROUTE_PERMISSIONS.items() if i in permission_ids]
        self._attach(route_permission_id, "permissions", names, detach)

    def sync_roles(self, route_permission_id, role_ids, *, detach=True):
        names = [n for n, i in ROUTE_ROLES.items() if i in role_ids]
        self._attach(route_permission_id, "roles", names, detach)

    def permission_ids(self, names):
        return {n: ROUTE_PERMISSIONS[n] for n in names if n in ROUTE_PERMISSIONS}

    def role_ids(self, names):
        return {n: ROUTE_ROLES[n] for n in names if n in ROUTE_ROLES}

    def stats(self):
        active = [r for r in self._routes.values() if r.is_active]
        return RouteStats(
            total_routes=len(self._routes),
            active_routes=len(active),
            protected_routes=sum(1 for r in active if r.is_protected),
            routes_with_permissions=sum(1 for r in active if r.permissions),
            total_groups=len({r.group_name for r in active}),
        )
