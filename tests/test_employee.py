"""Employee aggregate and status tests."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from employee_api.exceptions import (
    InvalidStatusTransitionError,
    TerminatedEmployeeError,
    ValidationError,
)
from employee_api.models.domain.employee import (
    Employee,
    validate_email,
    validate_hire_date,
    validate_name,
    validate_phone,
    validate_salary,
)
from employee_api.models.domain.employee_status import (
    EmployeeStatus,
    all_statuses,
    parse_employee_status,
)

ADDRESS = {
    "street": "123 Main Street",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "USA",
}


def make_employee(**overrides) -> Employee:
    data = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane.doe@example.com",
        "department": "Engineering",
        "position": "Software Engineer",
        "hire_date": date.today() - timedelta(days=400),
        "salary": Decimal("85000"),
    }
    data.update(overrides)
    return Employee.create(**data)


class TestEmployeeStatus:
    """Tests for status parsing and transitions."""

    @pytest.mark.parametrize("raw", ["active", " ACTIVE ", "Active"])
    def test_parse_is_case_insensitive(self, raw):
        assert parse_employee_status(raw) is EmployeeStatus.ACTIVE

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValidationError):
            parse_employee_status("RETIRED")

    @pytest.mark.parametrize(
        "current,target",
        [
            (EmployeeStatus.ACTIVE, EmployeeStatus.ON_LEAVE),
            (EmployeeStatus.ACTIVE, EmployeeStatus.TERMINATED),
            (EmployeeStatus.ON_LEAVE, EmployeeStatus.ACTIVE),
            (EmployeeStatus.ON_LEAVE, EmployeeStatus.TERMINATED),
            (EmployeeStatus.ACTIVE, EmployeeStatus.ACTIVE),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert current.can_change_to(target)

    @pytest.mark.parametrize("target", list(EmployeeStatus))
    def test_terminated_is_terminal(self, target):
        assert not EmployeeStatus.TERMINATED.can_change_to(target)
        with pytest.raises(InvalidStatusTransitionError):
            EmployeeStatus.TERMINATED.validate_transition(target)

    def test_display_name(self):
        assert EmployeeStatus.ON_LEAVE.display_name == "On Leave"


class TestFieldValidators:
    """Tests for the individual field validators."""

    @pytest.mark.parametrize("name", ["Jo", "O'Brien", "Mary-Jane", "José", "Anne Marie"])
    def test_valid_names(self, name):
        assert validate_name(name, "first name") == name

    @pytest.mark.parametrize(
        "name,message",
        [
            ("", "first name is required"),
            ("J", "first name must be at least 2 characters long"),
            ("J" * 51, "first name cannot exceed 50 characters"),
            ("Jane2", "first name contains invalid characters"),
        ],
    )
    def test_invalid_names(self, name, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_name(name, "first name")
        assert exc_info.value.message == message
        assert exc_info.value.field == "first_name"

    def test_email_is_normalized(self):
        assert validate_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.parametrize("email", ["", "jane", "jane@", "jane@example", "a" * 95 + "@x.com"])
    def test_invalid_emails(self, email):
        with pytest.raises(ValidationError):
            validate_email(email)

    def test_blank_phone_becomes_none(self):
        assert validate_phone("   ") is None

    @pytest.mark.parametrize("phone", ["phone", "555-CALL-NOW", "1" * 21])
    def test_invalid_phones(self, phone):
        with pytest.raises(ValidationError):
            validate_phone(phone)

    @pytest.mark.parametrize(
        "salary,message",
        [
            (0, "salary is required"),
            (-1, "salary cannot be negative"),
            (1_000_001, "salary cannot exceed $1,000,000"),
            ("lots", "salary must be a number"),
        ],
    )
    def test_invalid_salaries(self, salary, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_salary(salary)
        assert exc_info.value.message == message

    @pytest.mark.parametrize("salary", [1, 1_000_000, 52_000.50, "75000"])
    def test_valid_salaries(self, salary):
        assert validate_salary(salary) == Decimal(str(salary))

    def test_hire_date_bounds(self):
        today = date(2024, 6, 15)
        assert validate_hire_date(date(2024, 6, 15), today) == date(2024, 6, 15)
        assert validate_hire_date(date(1974, 6, 15), today) == date(1974, 6, 15)
        with pytest.raises(ValidationError, match="future"):
            validate_hire_date(date(2024, 6, 16), today)
        with pytest.raises(ValidationError, match="50 years"):
            validate_hire_date(date(1974, 6, 14), today)


class TestEmployee:
    """Tests for the employee aggregate."""

    def test_create_defaults(self):
        employee = make_employee(email="JANE.DOE@example.com")
        assert employee.status is EmployeeStatus.ACTIVE
        assert employee.email == "jane.doe@example.com"
        assert employee.full_name == "Jane Doe"
        assert employee.created_at == employee.updated_at
        assert employee.address is None

    def test_create_with_address(self):
        employee = make_employee(address=ADDRESS)
        assert employee.address is not None
        assert employee.address.city == "Springfield"

    def test_create_with_empty_address_stores_none(self):
        employee = make_employee(address={key: "" for key in ADDRESS})
        assert employee.address is None

    def test_cannot_be_own_manager(self):
        employee = make_employee()
        with pytest.raises(ValidationError, match="own manager"):
            employee.set_manager(employee.id)

    def test_change_status_bumps_updated_at(self):
        employee = make_employee()
        before = employee.updated_at
        employee.change_status(EmployeeStatus.ON_LEAVE)
        assert employee.is_on_leave()
        assert employee.updated_at >= before

    def test_self_transition_is_allowed(self):
        employee = make_employee()
        employee.change_status("ACTIVE")
        assert employee.is_active()

    def test_terminated_cannot_be_reactivated(self):
        employee = make_employee()
        employee.change_status(EmployeeStatus.TERMINATED)
        with pytest.raises(InvalidStatusTransitionError):
            employee.change_status(EmployeeStatus.ACTIVE)
        assert employee.is_terminated()

    def test_terminated_salary_and_position_are_locked(self):
        employee = make_employee()
        employee.change_status(EmployeeStatus.TERMINATED)
        with pytest.raises(TerminatedEmployeeError):
            employee.update_salary(90000)
        with pytest.raises(TerminatedEmployeeError):
            employee.update_position("Staff Engineer", "Engineering")
        assert employee.salary == Decimal("85000")

    def test_terminated_contact_info_can_change(self):
        employee = make_employee()
        employee.change_status(EmployeeStatus.TERMINATED)
        employee.update_contact_info("jane@personal.example.com", None)
        assert employee.email == "jane@personal.example.com"
        assert employee.phone is None

    def test_invalid_salary_is_rejected_before_state_check(self):
        employee = make_employee()
        employee.change_status(EmployeeStatus.TERMINATED)
        with pytest.raises(ValidationError):
            employee.update_salary(0)

    def test_apply_changes_reports_changed_fields(self):
        employee = make_employee()
        changed = employee.apply_changes(
            {"first_name": "Janet", "salary": Decimal("85000"), "department": "Research"}
        )
        assert changed == ["first_name", "department"]
        assert employee.first_name == "Janet"
        assert employee.department == "Research"

    def test_apply_changes_is_atomic(self):
        employee = make_employee()
        with pytest.raises(ValidationError):
            employee.apply_changes({"first_name": "Janet", "email": "not-an-email"})
        assert employee.first_name == "Jane"

    def test_apply_changes_rejects_unknown_fields(self):
        employee = make_employee()
        with pytest.raises(ValidationError, match="unknown employee fields: status"):
            employee.apply_changes({"status": "TERMINATED"})

    def test_apply_changes_respects_termination_lock(self):
        employee = make_employee()
        employee.change_status(EmployeeStatus.TERMINATED)
        with pytest.raises(TerminatedEmployeeError):
            employee.apply_changes({"salary": 90000})
        assert employee.apply_changes({"phone": "555-0100"}) == ["phone"]

    def test_apply_changes_without_differences(self):
        employee = make_employee()
        before = employee.updated_at
        assert employee.apply_changes({"first_name": "Jane"}) == []
        assert employee.updated_at == before

    def test_trusted_rehydration_skips_hire_date_window(self):
        old = make_employee().model_dump()
        old["hire_date"] = date.today() - timedelta(days=365 * 60)
        with pytest.raises(ValidationError):
            Employee.model_validate(old)
        employee = Employee.model_validate(old, context={"trusted": True})
        assert employee.hire_date == old["hire_date"]

    def test_snapshot_is_json_friendly(self):
        manager_id = uuid4()
        employee = make_employee(manager_id=manager_id, address=ADDRESS)
        snapshot = employee.snapshot()
        assert snapshot["salary"] == 85000.0
        assert snapshot["status"] == "ACTIVE"
        assert snapshot["manager_id"] == str(manager_id)
        assert snapshot["address"] == ADDRESS
        assert snapshot["hire_date"] == employee.hire_date.isoformat()

    @pytest.mark.parametrize(
        "hire_date,today,expected",
        [
            (date(2020, 1, 1), date(2020, 2, 15), "1 month"),
            (date(2020, 1, 1), date(2020, 7, 1), "5 months"),
            (date(2017, 1, 1), date(2020, 7, 1), "3.5 years"),
        ],
    )
    def test_tenure_string(self, hire_date, today, expected):
        employee = Employee.model_validate(
            {**make_employee().model_dump(), "hire_date": hire_date},
            context={"trusted": True},
        )
        assert employee.tenure_string(today) == expected


class TestDerivedValues:
    """Tests for derived employee values."""

    def test_all_statuses_is_complete(self):
        assert set(all_statuses()) == set(EmployeeStatus)
        assert all_statuses() == all_statuses()

    def test_years_of_service_uses_365_25_day_years(self):
        employee = make_employee(hire_date=date(2020, 1, 1))

        assert employee.years_of_service(today=date(2020, 1, 1) + timedelta(days=1461)) == 4.0

    def test_can_be_managed_by(self):
        manager_id = uuid4()
        employee = make_employee()
        assert employee.can_be_managed_by(manager_id) is False

        employee.set_manager(manager_id)

        assert employee.can_be_managed_by(manager_id) is True
        assert employee.can_be_managed_by(uuid4()) is False

    def test_clone_is_independent(self):
        employee = make_employee(address=ADDRESS)
        copy = employee.clone()

        copy.update_salary(Decimal("99000"))

        assert copy == copy.clone()
        assert employee.salary != copy.salary
        assert copy.id == employee.id
