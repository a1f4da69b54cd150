"""Employee service tests."""

from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import (
    ACTOR_ID,
    FailingAuditLogRepository,
    FailingEventStore,
    FailingHandler,
    RecordingHandler,
    make_employee_data,
)
from employee_api.exceptions import (
    CircularManagementError,
    DuplicateRecordError,
    EmailAlreadyExistsError,
    EmployeeHasDirectReportsError,
    EmployeeNotFoundError,
    InvalidStatusTransitionError,
    ManagerNotFoundError,
    RepositoryError,
    TerminatedEmployeeError,
    ValidationError,
)
from employee_api.models.domain.audit_log import AuditOperation
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.events import EventKind
from employee_api.models.dto.employee import AddressPayload, EmployeeUpdate
from employee_api.repositories.memory import InMemoryEmployeeRepository
from employee_api.services.audit_service import AdvisoryStage, AuditService
from employee_api.services.employee_service import EmployeeService

ADDRESS = AddressPayload(
    street="123 Main Street",
    city="Springfield",
    state="IL",
    postal_code="62701",
    country="USA",
)


async def create(service, context, **overrides):
    result = await service.create_employee(make_employee_data(**overrides), ACTOR_ID, context)
    return result.value


class TestCreateEmployee:
    """Tests for employee creation."""

    @pytest.mark.asyncio
    async def test_create_audits_and_publishes(
        self, employee_service, context, audit_repo, event_store
    ):
        result = await employee_service.create_employee(
            make_employee_data(address=ADDRESS), ACTOR_ID, context
        )

        assert result.ok
        employee = result.value
        assert employee.status is EmployeeStatus.ACTIVE
        assert employee.address.city == "Springfield"

        [log] = audit_repo.records
        assert log.operation == AuditOperation.EMPLOYEE_CREATE
        assert log.employee_id == employee.id
        assert log.user_id == ACTOR_ID
        assert log.ip_address == "192.168.1.10"
        assert log.is_creation()
        assert log.new_values["salary"] == 85000.0

        kinds = [event.type for event in event_store.events]
        assert kinds == [EventKind.AUDIT_LOG_CREATED, EventKind.EMPLOYEE_CREATED]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, employee_service, context):
        await create(employee_service, context)
        with pytest.raises(EmailAlreadyExistsError):
            await create(employee_service, context, email="JANE.DOE@example.com", first_name="Janet")

    @pytest.mark.asyncio
    async def test_unknown_manager(self, employee_service, context):
        with pytest.raises(ManagerNotFoundError):
            await create(employee_service, context, manager_id=uuid4())

    @pytest.mark.asyncio
    async def test_invalid_field_creates_nothing(self, employee_service, context, employee_repo):
        with pytest.raises(ValidationError):
            await create(employee_service, context, salary=Decimal("0"))
        assert await employee_repo.count() == 0

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_block_creation(
        self, employee_repo, event_store, dispatcher, context
    ):
        audit_service = AuditService(FailingAuditLogRepository(), event_store, dispatcher)
        service = EmployeeService(employee_repo, audit_service)

        result = await service.create_employee(make_employee_data(), ACTOR_ID, context)

        assert not result.ok
        assert [a.stage for a in result.advisories] == [AdvisoryStage.AUDIT]
        assert await employee_repo.exists_by_id(result.value.id)
        assert [event.type for event in event_store.events] == [EventKind.EMPLOYEE_CREATED]

    @pytest.mark.asyncio
    async def test_event_store_failure_still_dispatches(
        self, employee_repo, audit_repo, dispatcher, context
    ):
        handler = RecordingHandler()
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, handler)
        audit_service = AuditService(audit_repo, FailingEventStore(), dispatcher)
        service = EmployeeService(employee_repo, audit_service)

        result = await service.create_employee(make_employee_data(), ACTOR_ID, context)

        stages = [a.stage for a in result.advisories]
        assert stages == [AdvisoryStage.AUDIT_EVENT, AdvisoryStage.EVENT_STORE]
        assert len(handler.received) == 1
        assert len(audit_repo.records) == 1

    @pytest.mark.asyncio
    async def test_handler_failure_is_advisory(self, employee_service, dispatcher, context):
        dispatcher.register_handler(EventKind.EMPLOYEE_CREATED, FailingHandler())

        result = await employee_service.create_employee(make_employee_data(), ACTOR_ID, context)

        [advisory] = result.advisories
        assert advisory.stage == AdvisoryStage.DISPATCH
        assert "1 errors" in advisory.message


class TestUpdateEmployee:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_audit_contains_only_changed_fields(self, employee_service, context, audit_repo):
        employee = await create(employee_service, context)

        result = await employee_service.update_employee(
            employee.id,
            EmployeeUpdate(salary=Decimal("90000"), department="Engineering"),
            ACTOR_ID,
            context,
        )

        assert result.value.salary == Decimal("90000")
        log = audit_repo.records[-1]
        assert log.operation == AuditOperation.EMPLOYEE_UPDATE
        assert log.old_values == {"salary": 85000.0}
        assert log.new_values == {"salary": 90000.0}
        assert "status" not in log.new_values

    @pytest.mark.asyncio
    async def test_no_op_update_emits_nothing(
        self, employee_service, context, audit_repo, event_store
    ):
        employee = await create(employee_service, context)
        audits, events = len(audit_repo.records), len(event_store.events)

        result = await employee_service.update_employee(
            employee.id, EmployeeUpdate(first_name="Jane"), ACTOR_ID, context
        )

        assert result.ok
        assert len(audit_repo.records) == audits
        assert len(event_store.events) == events

    @pytest.mark.asyncio
    async def test_explicit_null_clears_phone(self, employee_service, context):
        employee = await create(employee_service, context)
        update = EmployeeUpdate.model_validate({"phone": None})

        result = await employee_service.update_employee(employee.id, update, ACTOR_ID, context)

        assert result.value.phone is None

    @pytest.mark.asyncio
    async def test_email_taken_by_another_employee(self, employee_service, context):
        await create(employee_service, context)
        other = await create(employee_service, context, email="john@example.com", first_name="John")
        with pytest.raises(EmailAlreadyExistsError):
            await employee_service.update_employee(
                other.id, EmployeeUpdate(email="jane.doe@example.com"), ACTOR_ID, context
            )

    @pytest.mark.asyncio
    async def test_self_manager_is_rejected(self, employee_service, context):
        employee = await create(employee_service, context)
        with pytest.raises(ValidationError, match="own manager"):
            await employee_service.update_employee(
                employee.id, EmployeeUpdate(manager_id=employee.id), ACTOR_ID, context
            )

    @pytest.mark.asyncio
    async def test_missing_employee(self, employee_service, context):
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.update_employee(
                uuid4(), EmployeeUpdate(first_name="John"), ACTOR_ID, context
            )


class TestStatusAndSalary:
    """Tests for status transitions and compensation changes."""

    @pytest.mark.asyncio
    async def test_terminated_employee_cannot_be_reactivated(self, employee_service, context):
        employee = await create(employee_service, context)
        await employee_service.change_employee_status(
            employee.id, EmployeeStatus.TERMINATED, ACTOR_ID, context
        )
        with pytest.raises(InvalidStatusTransitionError):
            await employee_service.change_employee_status(
                employee.id, EmployeeStatus.ACTIVE, ACTOR_ID, context
            )
        stored = await employee_service.get_employee_by_id(employee.id)
        assert stored.is_terminated()

    @pytest.mark.asyncio
    async def test_status_change_event(self, employee_service, context, event_store):
        employee = await create(employee_service, context)
        await employee_service.change_employee_status(
            employee.id, EmployeeStatus.ON_LEAVE, ACTOR_ID, context
        )
        event = event_store.events[-1]
        assert event.type is EventKind.EMPLOYEE_STATUS_CHANGED
        assert event.payload.old_status is EmployeeStatus.ACTIVE
        assert event.payload.new_status is EmployeeStatus.ON_LEAVE
        assert event.payload.changed_by == ACTOR_ID

    @pytest.mark.asyncio
    async def test_salary_change_event(self, employee_service, context, event_store):
        employee = await create(employee_service, context)
        await employee_service.update_employee_salary(employee.id, 93500, ACTOR_ID, context)
        event = event_store.events[-1]
        assert event.type is EventKind.EMPLOYEE_SALARY_CHANGED
        assert event.payload.change_type == "increase"
        assert event.payload.change_percent == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_terminated_salary_is_locked(self, employee_service, context):
        employee = await create(employee_service, context)
        await employee_service.change_employee_status(
            employee.id, EmployeeStatus.TERMINATED, ACTOR_ID, context
        )
        with pytest.raises(TerminatedEmployeeError):
            await employee_service.update_employee_salary(employee.id, 90000, ACTOR_ID, context)
        with pytest.raises(TerminatedEmployeeError):
            await employee_service.update_employee_position(
                employee.id, "Manager", "Sales", ACTOR_ID, context
            )

    @pytest.mark.asyncio
    async def test_position_update(self, employee_service, context, audit_repo):
        employee = await create(employee_service, context)
        result = await employee_service.update_employee_position(
            employee.id, "Staff Engineer", "Engineering", ACTOR_ID, context
        )
        assert result.value.position == "Staff Engineer"
        log = audit_repo.records[-1]
        assert log.operation == AuditOperation.EMPLOYEE_UPDATE_POSITION
        assert log.get_changed_fields() == ["position"]


class TestAddressAndManager:
    """Tests for address and reporting-line changes."""

    @pytest.mark.asyncio
    async def test_set_and_clear_address(self, employee_service, context):
        employee = await create(employee_service, context)
        result = await employee_service.update_employee_address(
            employee.id, ADDRESS.model_dump(), ACTOR_ID, context
        )
        assert result.value.address.postal_code == "62701"

        result = await employee_service.update_employee_address(employee.id, None, ACTOR_ID, context)
        assert result.value.address is None

    @pytest.mark.asyncio
    async def test_partial_address_is_rejected(self, employee_service, context):
        employee = await create(employee_service, context)
        with pytest.raises(ValidationError):
            await employee_service.update_employee_address(
                employee.id, {"street": "123 Main Street"}, ACTOR_ID, context
            )

    @pytest.mark.asyncio
    async def test_circular_management_is_rejected(self, employee_service, context):
        boss = await create(employee_service, context, email="boss@example.com")
        lead = await create(employee_service, context, email="lead@example.com", manager_id=boss.id)
        dev = await create(employee_service, context, email="dev@example.com", manager_id=lead.id)

        with pytest.raises(CircularManagementError):
            await employee_service.set_employee_manager(boss.id, dev.id, ACTOR_ID, context)

        stored = await employee_service.get_employee_by_id(boss.id)
        assert stored.manager_id is None

    @pytest.mark.asyncio
    async def test_unknown_manager(self, employee_service, context):
        employee = await create(employee_service, context)
        with pytest.raises(ManagerNotFoundError):
            await employee_service.set_employee_manager(employee.id, uuid4(), ACTOR_ID, context)

    @pytest.mark.asyncio
    async def test_direct_reports(self, employee_service, context):
        boss = await create(employee_service, context, email="boss@example.com")
        await create(employee_service, context, email="zed@example.com", first_name="Zed", manager_id=boss.id)
        await create(employee_service, context, email="amy@example.com", first_name="Amy", manager_id=boss.id)

        reports = await employee_service.get_direct_reports(boss.id)

        assert [e.first_name for e in reports] == ["Amy", "Zed"]
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.get_direct_reports(uuid4())


class TestDeleteEmployee:
    """Tests for deletion."""

    @pytest.mark.asyncio
    async def test_delete(self, employee_service, context, audit_repo, event_store):
        employee = await create(employee_service, context)

        result = await employee_service.delete_employee(employee.id, ACTOR_ID, context)

        assert result.value is None
        assert audit_repo.records[-1].is_deletion()
        assert event_store.events[-1].type is EventKind.EMPLOYEE_DELETED
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.get_employee_by_id(employee.id)

    @pytest.mark.asyncio
    async def test_manager_with_reports_cannot_be_deleted(self, employee_service, context):
        boss = await create(employee_service, context, email="boss@example.com")
        await create(employee_service, context, email="dev@example.com", manager_id=boss.id)

        with pytest.raises(EmployeeHasDirectReportsError):
            await employee_service.delete_employee(boss.id, ACTOR_ID, context)

    @pytest.mark.asyncio
    async def test_delete_missing(self, employee_service, context):
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.delete_employee(uuid4(), ACTOR_ID, context)


class TestEmployeeQueries:
    @pytest.mark.asyncio
    async def test_search_orders_by_name(self, employee_service, context):
        await create(employee_service, context, email="b@example.com", first_name="Bea", last_name="Smith")
        await create(employee_service, context, email="a@example.com", first_name="Al", last_name="Smith")
        await create(employee_service, context, email="c@example.com", first_name="Cy", last_name="Jones")

        page = await employee_service.search_employees("smith")

        assert [e.first_name for e in page.items] == ["Al", "Bea"]
        assert page.total == 2


class VanishingEmployeeRepository(InMemoryEmployeeRepository):
    """Repository whose rows disappear right after they are read."""

    async def get_by_id(self, employee_id):
        employee = await super().get_by_id(employee_id)
        if employee is not None:
            await self.delete(employee_id)
        return employee


class BrokenWriteEmployeeRepository(InMemoryEmployeeRepository):
    """Repository whose updates fail with a driver-level error."""

    async def update(self, employee):
        raise ConnectionError("connection reset by peer")


class DuplicateIdEmployeeRepository(InMemoryEmployeeRepository):
    """Repository that rejects every insert on the primary key."""

    async def create(self, employee):
        raise DuplicateRecordError("id", employee.id)


class TestPersistenceErrors:
    """Tests for repository failures surfacing as domain errors."""

    @pytest.mark.asyncio
    async def test_row_deleted_before_update(self, audit_service, context):
        repo = VanishingEmployeeRepository()
        employee = await create(EmployeeService(InMemoryEmployeeRepository(), audit_service), context)
        await repo.create(employee)
        service = EmployeeService(repo, audit_service)

        with pytest.raises(EmployeeNotFoundError):
            await service.change_employee_status(
                employee.id, EmployeeStatus.ON_LEAVE, ACTOR_ID, context
            )

    @pytest.mark.asyncio
    async def test_write_failure_is_wrapped_with_operation(self, audit_service, context):
        repo = BrokenWriteEmployeeRepository()
        service = EmployeeService(repo, audit_service)
        employee = await create(service, context)

        with pytest.raises(RepositoryError) as exc_info:
            await service.update_employee_salary(employee.id, Decimal("60000"), ACTOR_ID, context)

        assert exc_info.value.details["operation"] == "update"
        assert exc_info.value.details["employee_id"] == str(employee.id)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_duplicate_id_is_not_an_email_conflict(self, audit_service, context, audit_repo):
        service = EmployeeService(DuplicateIdEmployeeRepository(), audit_service)

        with pytest.raises(RepositoryError) as exc_info:
            await create(service, context)

        assert not isinstance(exc_info.value, EmailAlreadyExistsError)
        assert exc_info.value.details["field"] == "id"
        assert audit_repo.records == []


class TestRequiredFieldNulls:
    """Tests for explicit nulls on fields that cannot be cleared."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field,message",
        [
            ("first_name", "first name is required"),
            ("last_name", "last name is required"),
            ("email", "email is required"),
            ("department", "department is required"),
            ("position", "position is required"),
            ("salary", "salary"),
        ],
    )
    async def test_null_is_a_domain_validation_error(
        self, employee_service, context, field, message
    ):
        employee = await create(employee_service, context)
        update = EmployeeUpdate.model_validate({field: None})

        with pytest.raises(ValidationError, match=message):
            await employee_service.update_employee(employee.id, update, ACTOR_ID, context)

        stored = await employee_service.get_employee_by_id(employee.id)
        assert getattr(stored, field) == getattr(employee, field)
