#!/usr/bin/env python
"""Create the first admin user."""

import asyncio
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from employee_api.database import dispose_engine, get_session_maker
from employee_api.dependencies import get_event_dispatcher
from employee_api.exceptions import EmployeeAPIError
from employee_api.models.domain.user_role import UserRole
from employee_api.models.dto.user import UserCreate
from employee_api.repositories.audit_repository import SqlAuditLogRepository
from employee_api.repositories.event_store_repository import SqlEventStore
from employee_api.repositories.user_repository import SqlUserRepository
from employee_api.services.audit_service import AuditContext, AuditService
from employee_api.services.user_service import UserService

SYSTEM_ACTOR = "system"


async def create_admin(username: str, email: str, password: str) -> bool:
    """Create an active ADMIN user."""
    try:
        async with get_session_maker()() as session:
            audit_repo = SqlAuditLogRepository(session)
            audit_service = AuditService(audit_repo, SqlEventStore(session), get_event_dispatcher())
            service = UserService(SqlUserRepository(session), audit_repo, audit_service)
            try:
                result = await service.create_user(
                    UserCreate(username=username, email=email, password=password, role=UserRole.ADMIN),
                    SYSTEM_ACTOR,
                    AuditContext(ip_address="127.0.0.1", user_agent="create_admin"),
                )
            except EmployeeAPIError as e:
                print(f"Could not create admin: {e.message}")
                return False
            await session.commit()
    finally:
        await dispose_engine()

    print(f"Admin user created: {result.value.username} ({result.value.id})")
    for advisory in result.advisories:
        print(f"Warning: {advisory.stage}: {advisory.message}")
    return True


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Create the first admin user")
    parser.add_argument("--username", required=True, help="Username")
    parser.add_argument("--email", required=True, help="Email address")
    parser.add_argument("--password", required=True, help="Password (min 8 chars)")
    args = parser.parse_args()

    sys.exit(0 if asyncio.run(create_admin(args.username, args.email, args.password)) else 1)
