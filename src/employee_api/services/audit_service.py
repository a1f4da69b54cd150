"""Audit logging and event publication shared by the services.

Both are side effects of a committed operation: a failure here is logged
and reported back as an :class:`Advisory`, never raised to the caller.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar
from uuid import UUID

from employee_api.models.domain.audit_log import AuditLog
from employee_api.models.domain.events import DomainEvent, audit_log_created
from employee_api.models.domain.query import AuditLogFilter, AuditLogSort, Page, Pagination
from employee_api.repositories.ports import AuditLogRepository, EventStoreRepository
from employee_api.services.event_dispatcher import EventDispatcher
from employee_api.utils.secure_logging import sanitize_exception_message

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdvisoryStage:
    """Side-effect stages that can fail without failing the operation."""

    AUDIT = "audit"
    EVENT_STORE = "event_store"
    DISPATCH = "dispatch"
    AUDIT_EVENT = "audit_event"
    LAST_LOGIN = "last_login"


@dataclass(frozen=True)
class AuditContext:
    """Request metadata recorded with every audit log."""

    ip_address: str
    user_agent: str | None = None


@dataclass(frozen=True)
class Advisory:
    """A side effect that failed after the operation succeeded."""

    stage: str
    message: str


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a mutating operation plus any advisory failures."""

    value: T
    advisories: list[Advisory] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every side effect succeeded."""
        return not self.advisories


def make_advisory(stage: str, error: Exception) -> Advisory:
    """Log a failed side effect and wrap it as an advisory."""
    message = sanitize_exception_message(error)
    logger.warning("Side effect %s failed: %s", stage, message)
    return Advisory(stage=stage, message=message)


class AuditService:
    """Writes audit logs and publishes domain events."""

    # Sensitive fields that should be masked in audit logs
    SENSITIVE_FIELDS = frozenset({
        "password",
        "password_hash",
        "current_password",
        "new_password",
        "token",
        "access_token",
        "secret",
    })

    def __init__(
        self,
        audit_repo: AuditLogRepository,
        event_store: EventStoreRepository,
        dispatcher: EventDispatcher,
    ) -> None:
        """Initialize audit service.

        Args:
            audit_repo: Audit log persistence
            event_store: Domain event persistence
            dispatcher: In-process event handlers
        """
        self.audit_repo = audit_repo
        self.event_store = event_store
        self.dispatcher = dispatcher

    @classmethod
    def _mask_sensitive_data(cls, data: dict[str, Any] | None) -> dict[str, Any]:
        """Mask sensitive fields in audit data to prevent credential leakage.

        Args:
            data: Dictionary that may contain sensitive fields

        Returns:
            Dictionary with sensitive values replaced by "[REDACTED]"
        """
        if not data:
            return {}

        masked: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in cls.SENSITIVE_FIELDS:
                masked[key] = "[REDACTED]"
            elif isinstance(value, dict):
                masked[key] = cls._mask_sensitive_data(value)
            elif isinstance(value, list):
                masked[key] = [
                    cls._mask_sensitive_data(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                masked[key] = value
        return masked

    async def record(
        self,
        operation: str,
        subject_id: UUID,
        actor_id: str,
        context: AuditContext,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> list[Advisory]:
        """Write an audit log and append its ``audit_log.created`` event.

        Args:
            operation: Operation name (use AuditOperation constants)
            subject_id: Employee or user the operation acted on
            actor_id: User performing the operation
            context: Client IP and user agent
            old_values: Values before the operation
            new_values: Values after the operation

        Returns:
            Advisories for whatever failed
        """
        try:
            audit_log = AuditLog(
                employee_id=subject_id,
                operation=operation,
                user_id=actor_id,
                old_values=self._mask_sensitive_data(old_values),
                new_values=self._mask_sensitive_data(new_values),
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            await self.audit_repo.create(audit_log)
        except Exception as e:
            return [make_advisory(AdvisoryStage.AUDIT, e)]

        logger.debug(
            "Audit logged: operation=%s subject=%s actor=%s",
            operation,
            subject_id,
            actor_id,
        )

        try:
            await self.event_store.save_event(audit_log_created(audit_log))
        except Exception as e:
            return [make_advisory(AdvisoryStage.AUDIT_EVENT, e)]
        return []

    async def publish(self, event: DomainEvent) -> list[Advisory]:
        """Store an event, then deliver it to the registered handlers.

        Dispatch runs even when storing fails, so in-process handlers still
        observe the change.

        Returns:
            Advisories for whatever failed
        """
        advisories: list[Advisory] = []
        try:
            await self.event_store.save_event(event)
        except Exception as e:
            advisories.append(make_advisory(AdvisoryStage.EVENT_STORE, e))
        try:
            await self.dispatcher.dispatch(event)
        except Exception as e:
            advisories.append(make_advisory(AdvisoryStage.DISPATCH, e))
        return advisories

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_audit_logs(
        self,
        filter: AuditLogFilter | None = None,
        sort: AuditLogSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[AuditLog]:
        return await self.audit_repo.list(filter, sort, pagination)

    async def get_operations_summary(self, start: datetime, end: datetime) -> dict[str, int]:
        """Count audit logs per operation in a time range."""
        return await self.audit_repo.get_operations_summary(start, end)

    async def get_aggregate_events(self, aggregate_id: UUID) -> list[DomainEvent]:
        """List the stored events of one employee, user or audit log."""
        return await self.event_store.get_events_by_aggregate_id(aggregate_id)

    async def purge_expired(self, retention_days: int) -> int:
        """Delete audit logs older than the retention window.

        Args:
            retention_days: How many days of audit logs to keep

        Returns:
            Number of audit logs deleted
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        deleted = await self.audit_repo.delete_older_than(cutoff)
        if deleted:
            logger.info("Purged %d audit logs older than %s", deleted, cutoff.date())
        return deleted
