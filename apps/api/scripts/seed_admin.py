"""
Seed Admin User

Creates the initial admin account for SchoolHub.
Credentials are read from the environment; the password is hashed
before it is stored.

Usage:
    cd apps/api
    SEED_ADMIN_EMAIL=admin@school.dev SEED_ADMIN_PASSWORD=... python scripts/seed_admin.py
"""

import asyncio
import os
import sys

from schoolhub.core.database import async_session_maker, engine
from schoolhub.core.exceptions import AuthServiceError
from schoolhub.core.security import get_password_hasher
from schoolhub.modules.users.models import UserRole
from schoolhub.modules.users.repository import UserRepository


async def seed_admin() -> int:
    """Create the admin user if it doesn't exist."""
    email = os.getenv("SEED_ADMIN_EMAIL")
    password = os.getenv("SEED_ADMIN_PASSWORD")
    name = os.getenv("SEED_ADMIN_NAME", "School Administrator")

    if not email or not password:
        print("SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD must be set")
        return 1

    try:
        async with async_session_maker() as db:
            existing_user = await UserRepository.get_by_email(db, email)

            if existing_user:
                print(f"Admin already exists: {existing_user.email}")
                print(f"  ID: {existing_user.id}")
                print(f"  Role: {existing_user.role.value}")
                return 0

            try:
                admin_user = await UserRepository.create(
                    db,
                    name=name,
                    email=email,
                    password_hash=get_password_hasher().hash(password),
                    role=UserRole.ADMIN,
                )
            except AuthServiceError as e:
                print(f"Could not create admin: {e.message}")
                return 1

            print("Admin created successfully!")
            print(f"  Email: {admin_user.email}")
            print(f"  Name: {admin_user.name}")
            print(f"  ID: {admin_user.id}")
    finally:
        await engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(seed_admin()))
