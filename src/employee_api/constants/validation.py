"""Validation constants shared by the domain model and the API layer."""

import re

# Employee names
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
NAME_EXTRA_CHARS = frozenset("-'")

# Contact details
EMAIL_MAX_LENGTH = 100
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_MAX_LENGTH = 20
PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")

# Organization
DEPARTMENT_MIN_LENGTH = 2
DEPARTMENT_MAX_LENGTH = 50
DEPARTMENT_EXTRA_CHARS = frozenset("&")
POSITION_MIN_LENGTH = 2
POSITION_MAX_LENGTH = 50
POSITION_EXTRA_CHARS = frozenset("-/")

# Compensation and tenure
SALARY_MAX = 1_000_000
HIRE_DATE_MAX_YEARS = 50
DAYS_PER_YEAR = 365.25

# Address
STREET_MIN_LENGTH = 5
STREET_MAX_LENGTH = 200
CITY_MIN_LENGTH = 2
CITY_MAX_LENGTH = 100
STATE_MIN_LENGTH = 2
STATE_MAX_LENGTH = 50
COUNTRY_MIN_LENGTH = 2
COUNTRY_MAX_LENGTH = 100
US_ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
CA_POSTAL_PATTERN = re.compile(r"^[A-Z]\d[A-Z][ ]?\d[A-Z]\d$")
GENERIC_POSTAL_PATTERN = re.compile(r"^[A-Z0-9]{3,10}$")

# Users
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
ONLINE_WINDOW_MINUTES = 30

# Audit log
OPERATION_MAX_LENGTH = 50
OPERATION_PATTERN = re.compile(r"^[a-zA-Z0-9_:]+$")
IP_ADDRESS_MAX_LENGTH = 45
USER_AGENT_MAX_LENGTH = 500
CHANGE_SUMMARY_MAX_FIELDS = 3

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
