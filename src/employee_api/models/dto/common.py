"""DTOs shared across routers."""

from pydantic import BaseModel, Field

from employee_api.services.audit_service import Advisory


def warnings_from(advisories: list[Advisory]) -> list[str]:
    """Render advisories as client-facing warning strings."""
    return [f"{advisory.stage}: {advisory.message}" for advisory in advisories]


class DeleteResponse(BaseModel):
    """Deletion acknowledgement."""

    deleted: bool = True
    warnings: list[str] = Field(default_factory=list)


class PurgeResponse(BaseModel):
    """Audit retention purge result."""

    deleted: int
    retention_days: int
