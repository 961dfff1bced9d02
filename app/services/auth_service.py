# app/services/auth_service.py
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import Unauthenticated, ValidationFailed
from app.core.security import hash_password, verify_password
from app.db.unit_of_work import unit_of_work
from app.models.user import User

logger = logging.getLogger(__name__)


def get_user(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def authenticate_government(db: Session, email: str, password: str) -> User:
    """
    Government reviewers: email in the configured domain, known user,
    government flag set and bcrypt password match.
    """
    domain = get_settings().government_email_domain
    if not email.lower().endswith("@" + domain.lower()):
        logger.info("[auth] gov-login rejected for domain of %s", email)
        raise Unauthenticated("Invalid government email domain")

    user = get_user(db, email)
    if not user or not user.is_government or not user.password_hash:
        raise Unauthenticated("Invalid credentials")

    if not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    return user


def register_citizen(db: Session, email: str, name: str | None) -> User:
    """
    Citizens are already verified by the upstream identity provider;
    first login records them, later logins refresh the display name.
    """
    if not email or "@" not in email:
        raise ValidationFailed("Email is required")

    with unit_of_work(db, label="citizen login"):
        user = get_user(db, email)
        if user is None:
            user = User(email=email, name=name or email, is_government=False)
            db.add(user)
            logger.info("[auth] first citizen login %s", email)
        elif name and user.name != name:
            user.name = name

    return user


def create_government_user(db: Session, email: str, name: str, password: str) -> User:
    with unit_of_work(db, label="government user"):
        user = get_user(db, email)
        if user is None:
            user = User(email=email, name=name, is_government=True)
            db.add(user)
        user.name = name
        user.is_government = True
        user.password_hash = hash_password(password)
    return user
