import asyncio
import getpass
import os
import sys

# Add project root to path
sys.path.append(os.getcwd())

from sqlalchemy import select

from inkwell.config import Settings
from inkwell.core.security import get_password_hash
from inkwell.database import create_session_factory
from inkwell.models.user import User


async def create_user(superuser: bool = False):
    print("Create User")
    print("-----------")
    username = input("Enter username: ")
    if not username:
        print("Username cannot be empty.")
        return

    password = getpass.getpass("Enter password: ")
    if not password:
        print("Password cannot be empty.")
        return

    confirm_password = getpass.getpass("Confirm password: ")
    if password != confirm_password:
        print("Passwords do not match.")
        return

    engine, session_factory = create_session_factory(Settings())
    try:
        async with session_factory() as session:
            result = await session.execute(select(User).where(User.username == username))
            if result.scalar_one_or_none():
                print(f"Error: User '{username}' already exists.")
                return

            user = User(
                username=username,
                hashed_password=get_password_hash(password),
                is_superuser=superuser,
                is_active=True
            )
            session.add(user)
            await session.commit()
            print(f"Success: User '{username}' created.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_user(superuser="--superuser" in sys.argv))
