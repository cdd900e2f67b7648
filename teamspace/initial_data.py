# teamspace/initial_data.py

import logging
from sqlalchemy.orm import Session
import teamspace.models  # noqa: F401  (регистрирует все модели в Base.metadata)
from teamspace.models.base import Base
from teamspace.database import SessionLocal, engine
from teamspace.crud.user import create_user, get_user_by_username
from teamspace.core.settings import settings
from teamspace.core.exceptions import UserValidationError

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("Teamspace.InitialData")

def create_tables() -> None:
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

def create_initial_admin_user(db: Session) -> None:
    username = settings.FIRST_SUPERUSER_USERNAME
    if not username or not settings.FIRST_SUPERUSER_PASSWORD or not settings.FIRST_SUPERUSER_EMAIL:
        logger.info("FIRST_SUPERUSER_* not configured, skipping admin user.")
        return
    if get_user_by_username(db, username=username):
        logger.info(f"Admin user '{username}' already exists. No action taken.")
        return
    try:
        create_user(db, {
            "username": username,
            "email": settings.FIRST_SUPERUSER_EMAIL,
            "password": settings.FIRST_SUPERUSER_PASSWORD,
            "name": "Admin",
            "is_active": True,
            "is_superuser": True,
        })
        logger.info(f"Admin user '{username}' created successfully.")
    except UserValidationError as e:
        logger.error(f"Failed to create admin user: {e}")

def main() -> None:
    create_tables()
    db = SessionLocal()
    try:
        create_initial_admin_user(db)
    finally:
        db.close()
    logger.info("Finished initial data setup.")

if __name__ == "__main__":
    main()
