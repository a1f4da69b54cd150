"""Pagination, cursor and in-memory query tests."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from employee_api.exceptions import DuplicateRecordError, EmployeeNotFoundError, ValidationError
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.query import (
    EmployeeFilter,
    EmployeeSort,
    EmployeeSortField,
    Page,
    Pagination,
    SortDirection,
    decode_cursor,
    encode_cursor,
)
from employee_api.repositories.memory import InMemoryEmployeeRepository


def make(first: str, last: str, department: str = "Engineering", salary: int = 50000) -> Employee:
    return Employee.create(
        first_name=first,
        last_name=last,
        email=f"{first}.{last}@example.com".lower(),
        department=department,
        position="Analyst",
        hire_date=date.today() - timedelta(days=100),
        salary=salary,
    )


class TestPagination:
    """Tests for pagination parameters."""

    @pytest.mark.parametrize(
        "page,page_size,expected",
        [
            (1, 10, (1, 10)),
            (0, 0, (1, 10)),
            (-3, -5, (1, 10)),
            (2, 500, (2, 100)),
        ],
    )
    def test_clamping(self, page, page_size, expected):
        pagination = Pagination.of(page, page_size)
        assert (pagination.page, pagination.page_size) == expected

    def test_offset(self):
        assert Pagination.of(3, 20).offset == 40

    def test_cursor_mode(self):
        pagination = Pagination.after(encode_cursor(25), page_size=5)
        assert pagination.is_cursor
        assert pagination.offset == 25

    def test_first_cursor_page(self):
        assert Pagination.after(None).offset == 0

    def test_cursor_is_opaque(self):
        assert "offset" not in encode_cursor(7)
        assert decode_cursor(encode_cursor(7)) == 7

    @pytest.mark.parametrize("cursor", ["garbage!", encode_cursor(-1), "b2Zmc2V0OmFiYw=="])
    def test_invalid_cursor(self, cursor):
        with pytest.raises(ValidationError) as exc_info:
            decode_cursor(cursor)
        assert exc_info.value.field == "cursor"


class TestPage:
    """Tests for page assembly."""

    def test_page_mode_flags(self):
        page = Page.build(["a", "b"], total=5, pagination=Pagination.of(2, 2))
        assert page.page == 2
        assert page.has_next and page.has_prev
        assert page.next_cursor is None

    def test_last_page(self):
        page = Page.build(["e"], total=5, pagination=Pagination.of(3, 2))
        assert not page.has_next
        assert page.has_prev

    def test_cursor_mode_links(self):
        page = Page.build(["c", "d"], total=5, pagination=Pagination.after(encode_cursor(2), 2))
        assert decode_cursor(page.next_cursor) == 4
        assert decode_cursor(page.prev_cursor) == 0
        assert page.page == 2


class TestInMemoryEmployeeQueries:
    """Tests for filtering and sorting in the in-memory repository."""

    @pytest_asyncio.fixture
    async def repo(self) -> InMemoryEmployeeRepository:
        repo = InMemoryEmployeeRepository()
        await repo.create_many([
            make("Alice", "Zimmer", "Engineering", 90000),
            make("bob", "Young", "engineering", 60000),
            make("Carol", "Xu", "Sales", 70000),
            make("Dave", "Walker", "Sales", 40000),
        ])
        return repo

    @pytest.mark.asyncio
    async def test_department_filter_is_case_insensitive(self, repo):
        page = await repo.list(EmployeeFilter(department="ENGINEERING"))
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_search_matches_full_name(self, repo):
        page = await repo.list(EmployeeFilter(search="carol xu"))
        assert [e.first_name for e in page.items] == ["Carol"]

    @pytest.mark.asyncio
    async def test_salary_range(self, repo):
        page = await repo.list(
            EmployeeFilter(min_salary=Decimal("50000"), max_salary=Decimal("80000")),
            EmployeeSort(field=EmployeeSortField.SALARY, direction=SortDirection.ASC),
        )
        assert [int(e.salary) for e in page.items] == [60000, 70000]

    @pytest.mark.asyncio
    async def test_name_sort_ignores_case(self, repo):
        page = await repo.list(sort=EmployeeSort(field=EmployeeSortField.NAME, direction=SortDirection.ASC))
        assert [e.first_name for e in page.items] == ["Alice", "bob", "Carol", "Dave"]

    @pytest.mark.asyncio
    async def test_status_filter_and_count(self, repo):
        dave = (await repo.list(EmployeeFilter(search="dave"))).items[0]
        dave.change_status(EmployeeStatus.ON_LEAVE)
        await repo.update(dave)
        assert await repo.count(EmployeeFilter(status=EmployeeStatus.ON_LEAVE)) == 1

    @pytest.mark.asyncio
    async def test_paging_through_results(self, repo):
        sort = EmployeeSort(field=EmployeeSortField.NAME, direction=SortDirection.ASC)
        first = await repo.list(sort=sort, pagination=Pagination.after(None, 3))
        second = await repo.list(sort=sort, pagination=Pagination.after(first.next_cursor, 3))
        assert [e.first_name for e in second.items] == ["Dave"]
        assert second.next_cursor is None

    @pytest.mark.asyncio
    async def test_returned_employees_are_copies(self, repo):
        page = await repo.list()
        page.items[0].first_name = "Mallory"
        assert await repo.count(EmployeeFilter(search="mallory")) == 0

    @pytest.mark.asyncio
    async def test_duplicate_email_in_batch(self):
        repo = InMemoryEmployeeRepository()
        with pytest.raises(DuplicateRecordError) as exc_info:
            await repo.create_many([make("Eve", "Adams"), make("Eve", "Adams")])
        assert exc_info.value.field == "email"
        assert await repo.count() == 0

    @pytest.mark.asyncio
    async def test_update_missing_employee(self):
        with pytest.raises(EmployeeNotFoundError):
            await InMemoryEmployeeRepository().update(make("Eve", "Adams"))
