#!/usr/bin/env python
"""Create an admin account: add_user.py <email> <password> [name]."""
import sys

from sqlmodel import select

from taskflow.database import create_tables, get_session
from taskflow.models import User, UserRole
from taskflow.routers.auth import get_password_hash


def main(argv):
    if len(argv) < 3:
        print(__doc__)
        return 1
    email, password = argv[1], argv[2]
    name = argv[3] if len(argv) > 3 else "Administrator"

    # Create tables if not exist
    create_tables()

    with get_session() as db:
        existing_user = db.exec(select(User).where(User.email == email)).first()
        if existing_user:
            print("User already exists")
            return 0
        user = User(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN.value,
        )
        db.add(user)
        db.commit()
        print(f"Admin user created: {email}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
