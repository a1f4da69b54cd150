"""Address value object."""

from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from employee_api.constants.validation import (
    CA_POSTAL_PATTERN,
    CITY_MAX_LENGTH,
    CITY_MIN_LENGTH,
    COUNTRY_MAX_LENGTH,
    COUNTRY_MIN_LENGTH,
    GENERIC_POSTAL_PATTERN,
    STATE_MAX_LENGTH,
    STATE_MIN_LENGTH,
    STREET_MAX_LENGTH,
    STREET_MIN_LENGTH,
    US_ZIP_PATTERN,
)
from employee_api.exceptions import ValidationError

# (attribute, label, min length, max length) in validation order
_FIELD_RULES: tuple[tuple[str, str, int | None, int], ...] = (
    ("street", "street", STREET_MIN_LENGTH, STREET_MAX_LENGTH),
    ("city", "city", CITY_MIN_LENGTH, CITY_MAX_LENGTH),
    ("state", "state", STATE_MIN_LENGTH, STATE_MAX_LENGTH),
    ("postal_code", "postal code", None, 0),
    ("country", "country", COUNTRY_MIN_LENGTH, COUNTRY_MAX_LENGTH),
)


def is_valid_postal_code(postal_code: str) -> bool:
    """Check a postal code against US, Canadian and generic formats.

    Args:
        postal_code: Postal code as entered

    Returns:
        True if any supported format matches
    """
    normalized = postal_code.replace(" ", "").upper()
    return bool(
        US_ZIP_PATTERN.match(postal_code)
        or CA_POSTAL_PATTERN.match(postal_code)
        or GENERIC_POSTAL_PATTERN.match(normalized)
    )


class Address(BaseModel):
    """Postal address embedded in an employee.

    Either every field is empty (no address) or every field is set.
    """

    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True

    @field_validator("street", "city", "state", "postal_code", "country", mode="before")
    @classmethod
    def strip_whitespace(cls, value: Any) -> Any:
        """Trim surrounding whitespace; treat None as empty."""
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def validate_address(self) -> "Address":
        """Enforce the all-or-nothing rule and per-field formats."""
        if self.is_empty():
            return self

        for attribute, label, _, _ in _FIELD_RULES:
            if not getattr(self, attribute):
                raise ValidationError(
                    f"{label} is required when other address fields are provided",
                    field=attribute,
                )

        for attribute, label, min_length, max_length in _FIELD_RULES:
            value: str = getattr(self, attribute)
            if min_length is None:
                if not is_valid_postal_code(value):
                    raise ValidationError(
                        "invalid postal code: postal code format is invalid", field=attribute
                    )
                continue
            if len(value) < min_length:
                raise ValidationError(
                    f"{label} must be at least {min_length} characters long", field=attribute
                )
            if len(value) > max_length:
                raise ValidationError(
                    f"{label} cannot exceed {max_length} characters", field=attribute
                )
        return self

    def is_empty(self) -> bool:
        """Return True when no address field is set."""
        return not (self.street or self.city or self.state or self.postal_code or self.country)

    def format(self) -> str:
        """Render the address as mailing lines."""
        if self.is_empty():
            return ""
        lines = [
            self.street,
            f"{self.city}, {self.state} {self.postal_code}".strip(),
            self.country,
        ]
        return "\n".join(line for line in lines if line)

    def to_dict(self) -> dict[str, str]:
        """Return the address as a plain mapping for snapshots."""
        return self.model_dump()
