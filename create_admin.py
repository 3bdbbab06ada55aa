"""
Create a back-office admin account.

Usage:
    python create_admin.py admin@example.com
    (password read from ADMIN_PASSWORD or prompted)
"""
import getpass
import os
import sys

from app.database import SessionLocal
from app.models.user import User, UserRole
from app.auth.security import hash_password


def main():
    if len(sys.argv) != 2:
        sys.exit("usage: python create_admin.py <email>")
    email = sys.argv[1].strip().lower()
    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 8:
        sys.exit("password must be at least 8 characters")

    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            sys.exit(f"User {email} already exists")
        user = User(email=email, password_hash=hash_password(password), role=UserRole.ADMIN)
        db.add(user)
        db.commit()
        print(f"Admin created: id={user.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
