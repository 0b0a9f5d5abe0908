# app/db/init_db.py
import logging
from app.db.session import engine, Base
from app.db import models  # noqa: F401  registers tables on Base.metadata

logger = logging.getLogger(__name__)


def init_db(bind=None):
    logger.info("Initializing database...")
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables verified.")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


if __name__ == "__main__":
    from app.core.config import load_settings
    app_settings = load_settings()
    logger.info(f"Manual DB Init: Using database at {app_settings.DATABASE_URL}")
    init_db()
