from __future__ import annotations

from datetime import time

import pytest

from worktime.core.enums import Role
from worktime.core.exceptions import AuthorizationError, ValidationError
from worktime.policy.memory_policy_repository import InMemoryPolicyRepository
from worktime.policy.model import WorkHourPolicy
from worktime.policy.service import PolicyService


def test_defaults_until_first_save():
    service = PolicyService(InMemoryPolicyRepository(), defaults=WorkHourPolicy(late_threshold_minutes=15))

    assert service.get_policy().late_threshold_minutes == 15
    assert service.get_policy().check_in_time == time(9, 0)


def test_hr_updates_with_wire_names():
    repo = InMemoryPolicyRepository()
    service = PolicyService(repo)

    policy = service.update_policy(
        actor_role=Role.HR,
        changes={"checkInTime": "08:30", "lateThresholdMinutes": "10", "autoCheckoutEnabled": "false"},
        updated_by=9,
    )

    assert policy.check_in_time == time(8, 30)
    assert policy.late_threshold_minutes == 10
    assert policy.auto_checkout_enabled is False
    assert policy.check_out_time == time(18, 0)
    assert repo.updated_by == 9
    assert service.get_policy() == policy


@pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.TEAM_LEADER, Role.TEAM_MANAGER])
def test_only_settings_managers_update(role):
    with pytest.raises(AuthorizationError):
        PolicyService(InMemoryPolicyRepository()).update_policy(actor_role=role, changes={"breakMinutes": 30}, updated_by=1)


@pytest.mark.parametrize(
    "changes",
    [
        {},
        {"unknownKey": 1},
        {"checkOutTime": "08:00"},
        {"minimumWorkHours": 9},
        {"breakMinutes": "abc"},
        {"autoCheckoutEnabled": "maybe"},
        {"checkInTime": "25:00"},
    ],
)
def test_invalid_changes_are_rejected(changes):
    service = PolicyService(InMemoryPolicyRepository())

    with pytest.raises(ValidationError):
        service.update_policy(actor_role=Role.VP_ADMIN, changes=changes, updated_by=1)
    assert service.get_policy() == WorkHourPolicy()


def test_mapping_roundtrip_keeps_wire_names():
    mapping = WorkHourPolicy().to_mapping()

    assert mapping["checkInTime"] == "09:00"
    assert mapping["autoCheckoutTimeoutMinutes"] == 10
    assert WorkHourPolicy.from_mapping(mapping) == WorkHourPolicy()
