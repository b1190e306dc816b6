#!/usr/bin/env python3
"""
Create the super-admin account that can then create teacher accounts.

Usage:
  python scripts/create_super_user.py admin@school.org 'a-strong-password' --first-name Ada --last-name Admin
  # Requires DATABASE_URL and SECRET_KEY in .env (or export)
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from app.core.exceptions import Conflict  # noqa: E402
from app.database import AsyncSessionLocal, close_db  # noqa: E402
from app.models.enums import UserRole  # noqa: E402
from app.services.user_service import UserService  # noqa: E402


async def create_super_user(email: str, password: str, first_name: str, last_name: str) -> int:
    try:
        async with AsyncSessionLocal() as db:
            user = await UserService.create_user(
                db,
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=UserRole.SUPER_ADMIN,
            )
    except Conflict as e:
        print(f"ERROR: {e.message}: {email}")
        return 1
    finally:
        await close_db()
    print(f"SUCCESS: super admin {user.email} created (id {user.id})")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Create a ShortStacks super-admin account")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--first-name", default="Super")
    parser.add_argument("--last-name", default="Admin")
    args = parser.parse_args()

    if len(args.password) < 8:
        print("ERROR: password must be at least 8 characters")
        sys.exit(1)
    sys.exit(asyncio.run(create_super_user(args.email, args.password, args.first_name, args.last_name)))


if __name__ == "__main__":
    main()
