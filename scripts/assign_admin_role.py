#!/usr/bin/env python3
"""
Grant (or revoke) the admin role for a user by email.

Usage:
    python scripts/assign_admin_role.py admin@example.com
    python scripts/assign_admin_role.py admin@example.com --revoke
"""

import asyncio
import os
import sys

# Add apps to path (so padel_backend.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from padel_backend.database.db import AsyncSessionLocal
from padel_backend.database.models import UserRole
from padel_backend.services import user_service
from padel_backend.utils.exceptions import PadelError


async def assign_admin_role(email: str, revoke: bool = False):
    """Set the role of the user with ``email``."""
    role = UserRole.PLAYER.value if revoke else UserRole.ADMIN.value
    async with AsyncSessionLocal() as session:
        try:
            user = await user_service.set_user_role(session, email, role)
            await session.commit()
        except PadelError as e:
            await session.rollback()
            print(f"❌ {e}")
            return

    print(f"✅ {user['email']} (ID: {user['id']}) now has role '{user['role']}'")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("❌ Usage: python scripts/assign_admin_role.py <email> [--revoke]")
        sys.exit(1)
    asyncio.run(assign_admin_role(sys.argv[1], revoke="--revoke" in sys.argv[2:]))
