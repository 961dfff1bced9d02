import os

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.services.auth_service import create_government_user


def seed():
    db: Session = SessionLocal()

    domain = get_settings().government_email_domain
    email = os.getenv("SEED_GOV_EMAIL", f"reviewer@{domain}")
    password = os.getenv("SEED_GOV_PASSWORD", "change-me")

    try:
        user = create_government_user(db, email=email, name="Registry Reviewer", password=password)
        print(f"Seeded government reviewer {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
