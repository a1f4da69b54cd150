"""Domain event and dispatcher tests."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from conftest import FailingHandler, RecordingHandler
from employee_api.exceptions import EventDispatchError
from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.events import (
    DomainEvent,
    EmployeeCreated,
    EventKind,
    audit_log_created,
    employee_created,
    employee_salary_changed,
    employee_status_changed,
    user_password_changed,
)
from employee_api.services.event_dispatcher import EventDispatcher, describe_event


@pytest.fixture
def employee() -> Employee:
    return Employee.create(
        first_name="Jane",
        last_name="Doe",
        email="jane.doe@example.com",
        department="Engineering",
        position="Software Engineer",
        hire_date=date.today() - timedelta(days=30),
        salary=80000,
    )


class TestEventConstructors:
    """Tests for event payloads."""

    def test_employee_created(self, employee):
        event = employee_created(employee)
        assert event.type is EventKind.EMPLOYEE_CREATED
        assert event.aggregate_id == employee.id
        assert event.version == 1
        assert isinstance(event.payload, EmployeeCreated)
        assert event.data["salary"] == 80000.0
        assert event.data["has_manager"] is False
        assert "kind" not in event.data

    @pytest.mark.parametrize(
        "old,new,change_type,percent",
        [
            (80000.0, 88000.0, "increase", 10.0),
            (80000.0, 60000.0, "decrease", -25.0),
            (80000.0, 80000.0, "same", 0.0),
        ],
    )
    def test_salary_change_direction(self, old, new, change_type, percent):
        event = employee_salary_changed(uuid4(), old, new, "admin-1")
        assert event.payload.change_type == change_type
        assert event.payload.change_amount == new - old
        assert event.payload.change_percent == pytest.approx(percent)

    def test_audit_log_created_classifies_log(self):
        log = AuditLog(
            employee_id=uuid4(),
            operation="employee:update",
            user_id="admin-1",
            old_values={"salary": 1},
            new_values={"salary": 2},
            ip_address="10.0.0.1",
        )
        event = audit_log_created(log)
        assert event.aggregate_id == log.id
        assert event.payload.is_update
        assert not event.payload.is_creation
        assert event.payload.changed_fields == ("salary",)

    def test_from_record_restores_payload_type(self, employee):
        original = employee_status_changed(
            employee.id, EmployeeStatus.ACTIVE, EmployeeStatus.ON_LEAVE, "admin-1"
        )
        restored = DomainEvent.from_record(
            id=original.id,
            aggregate_id=original.aggregate_id,
            event_type=original.type.value,
            data=original.data,
            timestamp=original.timestamp,
            version=original.version,
        )
        assert restored == original
        assert restored.payload.new_status is EmployeeStatus.ON_LEAVE

    def test_from_record_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            DomainEvent.from_record(uuid4(), uuid4(), "employee.promoted", {}, None)

    def test_events_are_immutable(self, employee):
        event = employee_created(employee)
        with pytest.raises(Exception):
            event.version = 2

    @pytest.mark.parametrize(
        "event,expected",
        [
            (
                user_password_changed(uuid4(), "jdoe", "self", "change"),
                "user jdoe password change",
            ),
            (
                employee_salary_changed(uuid4(), 100.0, 110.0, "admin-1"),
                "salary increase (+10.00%)",
            ),
        ],
    )
    def test_describe_event(self, event, expected):
        assert expected in describe_event(event)


class TestEventDispatcher:
    """Tests for in-process dispatch."""

    @pytest.mark.asyncio
    async def test_routes_by_kind(self, employee):
        dispatcher = EventDispatcher()
        created = RecordingHandler()
        salary = RecordingHandler()
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, created)
        dispatcher.register_handler(EventKind.EMPLOYEE_SALARY_CHANGED, salary)

        await dispatcher.dispatch(employee_created(employee))

        assert len(created.received) == 1
        assert salary.received == []

    @pytest.mark.asyncio
    async def test_skips_handlers_that_decline(self, employee):
        dispatcher = EventDispatcher()
        picky = RecordingHandler(kinds={EventKind.USER_CREATED})
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, picky)

        await dispatcher.dispatch(employee_created(employee))

        assert picky.received == []

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_other_handlers(self, employee):
        dispatcher = EventDispatcher()
        first, last = RecordingHandler(), RecordingHandler()
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, first)
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, FailingHandler())
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, FailingHandler())
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, last)

        with pytest.raises(EventDispatchError) as exc_info:
            await dispatcher.dispatch(employee_created(employee))

        assert len(exc_info.value.errors) == 2
        assert "2 errors" in exc_info.value.message
        assert len(first.received) == 1
        assert len(last.received) == 1

    @pytest.mark.asyncio
    async def test_unregister(self, employee):
        dispatcher = EventDispatcher()
        handler = RecordingHandler()
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, handler)
        dispatcher.unregister_handlers(EventKind.EMPLOYEE_CREATED)

        await dispatcher.dispatch(employee_created(employee))

        assert dispatcher.handlers_for(EventKind.EMPLOYEE_CREATED) == []
        assert handler.received == []
