"""Audit log record tests."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from employee_api.exceptions import ValidationError
from employee_api.models.domain.audit_log import AuditLog, AuditOperation, join_fields, values_equal


def make_log(old=None, new=None, **overrides) -> AuditLog:
    data = {
        "employee_id": uuid4(),
        "operation": AuditOperation.EMPLOYEE_UPDATE,
        "user_id": "admin-1",
        "old_values": old,
        "new_values": new,
        "ip_address": "10.0.0.1",
    }
    data.update(overrides)
    return AuditLog(**data)


class TestValuesEqual:
    """Tests for type-aware snapshot comparison."""

    @pytest.mark.parametrize(
        "a,b",
        [
            (50000, 50000.0),
            (Decimal("85000.00"), 85000),
            (0.1, Decimal("0.1")),
            (None, None),
            (True, True),
            ("abc", "abc"),
            ({"a": 1, "b": [1, 2]}, {"a": 1.0, "b": [1, 2.0]}),
        ],
    )
    def test_equal(self, a, b):
        assert values_equal(a, b)

    @pytest.mark.parametrize(
        "a,b",
        [
            (True, 1),
            (0, False),
            (None, ""),
            ("1", 1),
            (float("nan"), float("nan")),
            ([1, 2], [1, 2, 3]),
            ({"a": 1}, {"b": 1}),
            (date(2024, 1, 1), datetime(2024, 1, 1)),
        ],
    )
    def test_not_equal(self, a, b):
        assert not values_equal(a, b)

    def test_uuid_equals_its_string(self):
        value = uuid4()
        assert values_equal(value, str(value))
        assert values_equal(str(value).upper(), value)
        assert not values_equal(value, str(uuid4()))


class TestJoinFields:
    @pytest.mark.parametrize(
        "fields,expected",
        [
            ([], ""),
            (["salary"], "salary"),
            (["salary", "status"], "salary and status"),
            (["email", "salary", "status"], "email, salary, and status"),
        ],
    )
    def test_join(self, fields, expected):
        assert join_fields(fields) == expected


class TestAuditLog:
    """Tests for construction, classification and diffing."""

    def test_requires_some_values(self):
        with pytest.raises(ValidationError, match="at least one"):
            make_log()

    @pytest.mark.parametrize("ip", ["192.168.1.1", "::1", "2001:db8::8a2e:370:7334"])
    def test_accepts_ip_addresses(self, ip):
        assert make_log(new={"a": 1}, ip_address=ip).ip_address == ip

    @pytest.mark.parametrize("ip", ["", "999.1.1.1", "localhost", "1" * 46])
    def test_rejects_bad_ip_addresses(self, ip):
        with pytest.raises(ValidationError) as exc_info:
            make_log(new={"a": 1}, ip_address=ip)
        assert exc_info.value.field == "ip_address"

    @pytest.mark.parametrize("operation", ["", "employee create", "x" * 51, "drop;table"])
    def test_rejects_bad_operations(self, operation):
        with pytest.raises(ValidationError):
            make_log(new={"a": 1}, operation=operation)

    def test_rejects_blank_actor(self):
        with pytest.raises(ValidationError):
            make_log(new={"a": 1}, user_id="  ")

    def test_rejects_long_user_agent(self):
        with pytest.raises(ValidationError):
            make_log(new={"a": 1}, user_agent="x" * 501)

    def test_is_immutable(self):
        log = make_log(new={"a": 1})
        with pytest.raises(Exception):
            log.operation = "employee:delete"

    @pytest.mark.parametrize(
        "old,new,expected",
        [
            (None, {"a": 1}, (True, False, False)),
            ({"a": 1}, None, (False, True, False)),
            ({"a": 1}, {"a": 2}, (False, False, True)),
        ],
    )
    def test_classification_is_exclusive(self, old, new, expected):
        log = make_log(old, new)
        assert (log.is_creation(), log.is_deletion(), log.is_update()) == expected

    def test_changed_fields(self):
        log = make_log(
            {"salary": 50000, "status": "ACTIVE", "phone": None},
            {"salary": 50000.0, "status": "TERMINATED", "phone": None, "department": "HR"},
        )
        assert log.get_changed_fields() == ["status", "department"]

    def test_field_change(self):
        log = make_log({"salary": 50000, "email": "a@x.com"}, {"salary": 60000, "phone": "555"})
        assert log.get_field_change("salary") == (50000, 60000, True)
        assert log.get_field_change("email") == ("a@x.com", None, True)
        assert log.get_field_change("phone") == (None, "555", True)
        assert log.get_field_change("missing") == (None, None, False)

    def test_change_summaries(self):
        assert make_log(None, {"first_name": "Jane"}).get_change_summary() == "Created: first_name"
        assert (
            make_log({"first_name": "Jane", "last_name": "Doe"}, None).get_change_summary()
            == "Deleted: first_name and last_name"
        )
        assert make_log({"a": 1}, {"a": 1.0}).get_change_summary() == "Updated: no changes"

    def test_change_summary_truncates(self):
        old = {name: 1 for name in "abcde"}
        new = {name: 2 for name in "abcde"}
        assert make_log(old, new).get_change_summary() == "Updated: a, b, and c and 2 more"

    def test_to_json(self):
        log = make_log(None, {"a": 1})
        assert AuditLog.model_validate_json(log.to_json()) == log
