"""
Healthcare Portal - Database Seed Script

Creates one demo hospital and one demo lab account for development.

Usage:
    python -m scripts.seed_accounts
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session, select

from healthportal.config import settings
from healthportal.auth.database import get_engine, init_db
from healthportal.auth.models import Account, Role, utcnow
from healthportal.auth.password import hash_password


DEMO_ACCOUNTS = [
    ("hospital@healthcareportal.local", "Hospital@2024", Role.HOSPITAL, "Demo General Hospital"),
    ("lab@healthcareportal.local", "Lab@2024!", Role.LAB, "Demo Diagnostics Lab"),
]


def seed_demo_accounts():
    """Create demo accounts for both roles, skipping any that exist."""
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)

    with Session(engine) as session:
        for email, password, role, organization_name in DEMO_ACCOUNTS:
            existing = session.exec(
                select(Account).where(Account.email == email, Account.role == role)
            ).first()

            if existing:
                print(f"{role.value} account {email} already exists.")
                continue

            now = utcnow()
            session.add(Account(
                email=email,
                password_hash=hash_password(password),
                role=role,
                organization_name=organization_name,
                created_at=now,
                updated_at=now,
            ))
            session.commit()
            print(f"Created {role.value} account: {email} / {password}")


if __name__ == "__main__":
    print("=" * 50)
    print("Healthcare Portal - Database Seeding")
    print("=" * 50)
    print()

    seed_demo_accounts()

    print()
    print("Seeding complete!")
