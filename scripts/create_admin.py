"""Create the administrator account (the first admin becomes the canonical one).

Usage:
    python scripts/create_admin.py admin@example.com "Dupont" --first-name "Marie"
"""
import argparse
import asyncio
import getpass
import sys

from coachdesk.database import async_session_maker, close_db, init_db
from coachdesk.kernel.identity.identity_service import IdentityService
from coachdesk.logging_config import configure_logging


async def create_admin(email: str, last_name: str, first_name: str, password: str) -> int:
    await init_db()
    try:
        async with async_session_maker() as session:
            try:
                user = await IdentityService(session).create_admin(
                    email=email,
                    password=password,
                    last_name=last_name,
                    first_name=first_name,
                )
            except ValueError as e:
                print(f"Not created: {e}")
                return 1
            await session.commit()
            print(f"Admin created: id={user.id} email={user.email}")
    finally:
        await close_db()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("last_name")
    parser.add_argument("--first-name", default="")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters")
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match")
        return 1

    configure_logging(log_level="INFO")
    return asyncio.run(create_admin(args.email, args.last_name, args.first_name, password))


if __name__ == "__main__":
    sys.exit(main())
