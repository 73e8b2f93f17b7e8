import os
import secrets
import sys

from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from portal.db.seed import create_admin
from portal.db.session import engine, init_db
from portal.models.user import User, UserRole


def create_initial_user():
    print("--- Initial Admin Creation ---")

    display_name = os.environ.get("ADMIN_DISPLAY_NAME", "Super Admin")
    email = os.environ.get("ADMIN_EMAIL", "admin@nexus-portal.com")
    password = os.environ.get("ADMIN_PASSWORD") or secrets.token_urlsafe(12)

    init_db()
    with Session(engine) as session:
        # Only bootstrap an empty portal
        existing = session.exec(select(User).where(User.role == UserRole.ADMIN.value)).first()
        if existing:
            print(f"An admin already exists (id {existing.id}).")
            return

        print(f"Creating admin {display_name}...")
        admin = create_admin(session, display_name, email, password)
        print("Initial admin created successfully!")
        # Login needs the id and display name, not the email
        print(f"ID: {admin.id}")
        print(f"Display name: {admin.display_name}")
        print(f"Password: {password}")


if __name__ == "__main__":
    create_initial_user()
