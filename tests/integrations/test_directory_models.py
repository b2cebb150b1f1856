"""Tests for DirectoryUser parsing."""

from facility_authz.config.constants import Role
from facility_authz.integrations.directory import DirectoryUser


def test_role_and_facility_from_prefs():
    user = DirectoryUser.from_record({
        "$id": "u1",
        "name": "Ada",
        "email": "ada@example.org",
        "prefs": {"role": "Doctor", "facilityId": 7},
        "labels": [],
    })

    assert user.primary_role == Role.DOCTOR
    assert user.home_facility_id == "7"
    assert not user.is_administrator


def test_legacy_labels():
    user = DirectoryUser.from_record({"$id": "u1", "labels": ["facility_manager", "facility_F9"]})

    assert user.roles == frozenset({Role.SUPERVISOR})
    assert user.facility_ids == ("F9",)


def test_role_prefixed_labels_and_highest_role():
    user = DirectoryUser.from_record({"$id": "u1", "labels": ["role:user", "admin", "facility:F1"]})

    assert user.primary_role == Role.ADMINISTRATOR
    assert user.is_administrator
    assert user.home_facility_id == "F1"


def test_pref_facility_comes_first():
    user = DirectoryUser.from_record({
        "$id": "u1",
        "prefs": {"facilityId": "F1"},
        "labels": ["facility:F2", "facility:F1"],
    })

    assert user.facility_ids == ("F1", "F2")


def test_unknown_role_is_ignored():
    user = DirectoryUser.from_record({"$id": "u1", "prefs": {"role": "janitor"}, "labels": ["vip"]})

    assert user.primary_role is None
    assert user.profile()["role"] is None


def test_profile():
    user = DirectoryUser.from_record({
        "$id": "u1",
        "name": "Ada",
        "email": "ada@example.org",
        "status": False,
        "prefs": {"role": "supervisor"},
    })

    assert user.profile() == {"name": "Ada", "email": "ada@example.org", "role": "supervisor", "active": False}
