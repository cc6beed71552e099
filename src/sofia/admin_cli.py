"""
Grant or revoke the admin role for an existing Sofia user.

Usage:
    sofia-admin <name>
    sofia-admin <name> --revoke
"""

import argparse
import asyncio
import sys
from typing import Optional

from sqlalchemy import select

from .database import User, async_session_maker, init_db


ADMIN_ROLE = "admin"
USER_ROLE = "user"


async def set_role(name: str, role: str) -> Optional[User]:
    """Set the role of the user called ``name``. Returns None if there is no such user."""
    async with async_session_maker() as session:
        user = await session.scalar(select(User).where(User.name == name))
        if user is None:
            return None
        user.role = role
        await session.commit()
        return user


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Manage Sofia admin users")
    parser.add_argument("name", help="Name the user authenticates with")
    parser.add_argument("--revoke", action="store_true", help="Demote back to a regular user")
    args = parser.parse_args(argv)

    role = USER_ROLE if args.revoke else ADMIN_ROLE

    async def run() -> Optional[User]:
        await init_db()
        return await set_role(args.name.strip(), role)

    user = asyncio.run(run())
    if user is None:
        print(f"✗ No user named {args.name!r}. They must sign in once first.")
        return 1

    print(f"✓ {user.name} ({user.id}) now has role: {user.role}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
