"""In-process domain event dispatch."""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import assert_never

from employee_api.exceptions import EventDispatchError
from employee_api.models.domain.events import (
    AuditLogCreated,
    DomainEvent,
    EmployeeCreated,
    EmployeeDeleted,
    EmployeeSalaryChanged,
    EmployeeStatusChanged,
    EmployeeUpdated,
    EventKind,
    UserCreated,
    UserLoggedIn,
    UserPasswordChanged,
)

logger = logging.getLogger(__name__)


class EventHandler(ABC):
    """Reacts to domain events of the kinds it accepts."""

    @abstractmethod
    def can_handle(self, kind: EventKind) -> bool:
        """Check whether this handler accepts the event kind."""

    @abstractmethod
    async def handle(self, event: DomainEvent) -> None:
        """Process one event."""


class EventDispatcher:
    """Routes events to the handlers registered for their kind.

    Handlers run in registration order. A failing handler does not stop the
    others; all failures are raised together afterwards.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = defaultdict(list)

    def register_handler(self, kind: EventKind, handler: EventHandler) -> None:
        self._handlers[kind].append(handler)

    def unregister_handlers(self, kind: EventKind) -> None:
        self._handlers.pop(kind, None)

    def handlers_for(self, kind: EventKind) -> list[EventHandler]:
        return list(self._handlers.get(kind, ()))

    async def dispatch(self, event: DomainEvent) -> None:
        """Deliver an event to every matching handler.

        Args:
            event: Event to deliver

        Raises:
            EventDispatchError: If one or more handlers failed
        """
        errors: list[Exception] = []
        for handler in self._handlers.get(event.type, ()):
            if not handler.can_handle(event.type):
                continue
            try:
                await handler.handle(event)
            except Exception as e:
                logger.warning(
                    "Handler %s failed for event %s: %s",
                    type(handler).__name__,
                    event.type,
                    e,
                )
                errors.append(e)
        if errors:
            raise EventDispatchError(errors)


class LoggingEventHandler(EventHandler):
    """Writes a one-line summary of every event to the application log."""

    def can_handle(self, kind: EventKind) -> bool:
        return True

    async def handle(self, event: DomainEvent) -> None:
        logger.info("Event %s (%s): %s", event.type, event.id, describe_event(event))


def describe_event(event: DomainEvent) -> str:
    """Summarize an event's payload for humans."""
    match event.payload:
        case EmployeeCreated(first_name=first, last_name=last, department=department):
            return f"employee {first} {last} created in {department}"
        case EmployeeUpdated(employee_id=employee_id, changed_fields=fields):
            return f"employee {employee_id} updated: {', '.join(fields)}"
        case EmployeeDeleted(employee_id=employee_id):
            return f"employee {employee_id} deleted"
        case EmployeeStatusChanged(employee_id=employee_id, old_status=old, new_status=new):
            return f"employee {employee_id} status {old} -> {new}"
        case EmployeeSalaryChanged(employee_id=employee_id, change_type=change, change_percent=pct):
            return f"employee {employee_id} salary {change} ({pct:+.2f}%)"
        case UserCreated(username=username, role=role):
            return f"user {username} created with role {role}"
        case UserLoggedIn(username=username, ip_address=ip):
            return f"user {username} logged in from {ip}"
        case UserPasswordChanged(username=username, method=method):
            return f"user {username} password {method}"
        case AuditLogCreated(operation=operation, user_id=actor):
            return f"audit {operation} by {actor}"
        case _:
            assert_never(event.payload)
