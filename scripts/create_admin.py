#!/usr/bin/env python3
"""Create or promote the first administrator account.

Self-registration only ever produces Patient accounts, so a fresh
deployment needs one administrator created out of band.

Usage:
    DATABASE_URL=postgresql+asyncpg://... python scripts/create_admin.py EMAIL PASSWORD [--name NAME]

An existing account with the same email is promoted to Administrator
and activated; its password is replaced.
"""
from __future__ import annotations

import argparse
import asyncio
import sys

from medidiagnose.core.config import get_settings
from medidiagnose.core.security import hash_password
from medidiagnose.db.session import DatabaseManager
from medidiagnose.models.enums import UserRole
from medidiagnose.repositories.user_repository import UserRepository


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="create_admin.py", description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Administrator", help="Full name (default: Administrator)")
    return parser.parse_args()


async def main(email: str, password: str, name: str) -> int:
    settings = get_settings()
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        print(
            f"ERROR: password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
            file=sys.stderr,
        )
        return 1

    db = DatabaseManager(settings)
    await db.init_db()
    try:
        async with db.session() as session:
            repo = UserRepository(session)
            password_hash = hash_password(password, rounds=settings.BCRYPT_ROUNDS)
            user = await repo.get_by_email(email)

            if user is None:
                user = await repo.create(
                    email=email,
                    password_hash=password_hash,
                    full_name=name,
                    role=UserRole.ADMINISTRATOR,
                    is_active=True,
                )
                print(f"Administrator created: ID={user.id}, Email={user.email}")
            else:
                await repo.update_fields(user, role=UserRole.ADMINISTRATOR, is_active=True)
                await repo.set_password(user, password_hash)
                print(f"Existing user promoted: ID={user.id}, Email={user.email}")
    finally:
        await db.close()
    return 0


if __name__ == "__main__":
    args = _parse_args()
    sys.exit(asyncio.run(main(args.email, args.password, args.name)))
