from datetime import datetime, timedelta, timezone

import pytest

from timebill.core.authorization import CallerContext, Operation, Role, authorize, is_allowed, parse_role
from timebill.core.clock import seconds_between, seconds_to_hours, to_naive_utc
from timebill.core.errors import ForbiddenError


@pytest.mark.parametrize("operation", list(Operation))
def test_admin_may_do_everything(operation):
    assert is_allowed(Role.ADMIN, operation)


def test_staff_restrictions():
    assert is_allowed(Role.STAFF, Operation.TRACK_TIME)
    assert not is_allowed(Role.STAFF, Operation.REVIEW_ENTRIES)
    assert not is_allowed(Role.STAFF, Operation.MANAGE_RATES)
    assert not is_allowed(Role.MANAGER, Operation.DELETE_ENTRY)

    with pytest.raises(ForbiddenError) as exc:
        authorize(CallerContext(user_id="s", tenant_id=1), Operation.REVIEW_ENTRIES)
    assert exc.value.status_code == 403


def test_parse_role():
    assert parse_role(None) is Role.STAFF
    assert parse_role("") is Role.STAFF
    assert parse_role("manager") is Role.MANAGER
    with pytest.raises(ValueError):
        parse_role("owner")


def test_clock_normalizes_to_naive_utc():
    aware = datetime(2026, 3, 2, 11, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_naive_utc(aware) == datetime(2026, 3, 2, 9, 0, 0)
    assert seconds_between(aware, datetime(2026, 3, 2, 9, 30, 0)) == 1800


def test_seconds_to_hours_rounds_to_two_places():
    assert seconds_to_hours(5400) == 1.5
    assert seconds_to_hours(1000) == 0.28
    assert seconds_to_hours(None) == 0.0
