"""Create the administrator account from ADMIN_* settings if it is missing.

Usage:
    python -m fixit_api.seed_admin
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fixit_api.auth import passwords
from fixit_api.core import config
from fixit_api.database import SessionLocal
from fixit_api.models.user import ROLE_ADMIN, User

logger = logging.getLogger(__name__)


def seed_admin(
    db: Session,
    name: str | None = None,
    email: str | None = None,
    password: str | None = None,
) -> User | None:
    name = name or config.ADMIN_NAME
    email = (email if email is not None else config.ADMIN_EMAIL).strip().lower()
    password = password if password is not None else config.ADMIN_PASSWORD

    if not email or not password:
        logger.warning('ADMIN_EMAIL or ADMIN_PASSWORD not set. Skipping admin seeding.')
        return None

    existing = db.query(User).filter(User.email == email).first()
    if existing is not None:
        logger.info('Admin user already exists')
        return existing

    admin = User(
        name=name,
        email=email,
        password=passwords.hash_password(password),
        role=ROLE_ADMIN,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info('Admin user created with email: %s', email)
    return admin


def seed_admin_on_startup() -> None:
    db = SessionLocal()
    try:
        seed_admin(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Error seeding admin user')
    finally:
        db.close()


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    db = SessionLocal()
    try:
        admin = seed_admin(db)
    finally:
        db.close()
    if admin is None:
        print("ADMIN_EMAIL and ADMIN_PASSWORD must be set.", file=sys.stderr)
        sys.exit(1)
    print(admin.email)


if __name__ == "__main__":
    main()
