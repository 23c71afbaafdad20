from dataclasses import dataclass
from enum import Enum

from timebill.core.errors import ForbiddenError


class Role(Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


class Operation(Enum):
    TRACK_TIME = "track_time"
    VIEW_ENTRIES = "view_entries"
    EDIT_OTHERS_ENTRIES = "edit_others_entries"
    REASSIGN_ENTRY = "reassign_entry"
    REVIEW_ENTRIES = "review_entries"
    DELETE_ENTRY = "delete_entry"
    VIEW_RATES = "view_rates"
    MANAGE_RATES = "manage_rates"
    COMMENT = "comment"
    BILLING = "billing"
    REPORTS = "reports"


_EVERYONE = frozenset({Role.ADMIN, Role.MANAGER, Role.STAFF})
_REVIEWERS = frozenset({Role.ADMIN, Role.MANAGER})

POLICY = {
    Operation.TRACK_TIME: _EVERYONE,
    Operation.VIEW_ENTRIES: _EVERYONE,
    Operation.EDIT_OTHERS_ENTRIES: _REVIEWERS,
    Operation.REASSIGN_ENTRY: _REVIEWERS,
    Operation.REVIEW_ENTRIES: _REVIEWERS,
    Operation.DELETE_ENTRY: frozenset({Role.ADMIN}),
    Operation.VIEW_RATES: _EVERYONE,
    Operation.MANAGE_RATES: _REVIEWERS,
    Operation.COMMENT: _EVERYONE,
    Operation.BILLING: _EVERYONE,
    Operation.REPORTS: _EVERYONE,
}


@dataclass(frozen=True)
class CallerContext:
    """Authenticated identity handed to every service call."""

    user_id: str
    tenant_id: int
    role: Role = Role.STAFF


def is_allowed(role: Role, operation: Operation) -> bool:
    return role in POLICY.get(operation, frozenset())


def authorize(caller: CallerContext, operation: Operation) -> None:
    if not is_allowed(caller.role, operation):
        raise ForbiddenError(
            f"Role {caller.role.value} may not perform {operation.value}"
        )


def parse_role(value) -> Role:
    if not value:
        return Role.STAFF
    return Role(str(value).upper())
