#!/usr/bin/env python3
"""
Database rebuild script.
Backs up users, sessions and cases to a JSON file, recreates the tables with the
current structure and restores the rows that still fit it.
"""
import sys
import json
from datetime import datetime

from app.core.config import load_settings
from app.db.session import engine, Base, SessionLocal
from app.db import models
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
import logging

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Restore order follows the foreign keys
TABLES = [
    ("users", models.User),
    ("sessions", models.ConversationSession),
    ("cases", models.Case),
]
JSON_COLUMNS = {"messages", "filing_questions", "user_responses"}
DATETIME_COLUMNS = {"created_at", "updated_at", "started_at", "ended_at"}


def backup_existing_data():
    logger.info("Backing up existing data...")
    backup = {}
    with engine.connect() as connection:
        for table_name, _ in TABLES:
            try:
                result = connection.execute(text(f"SELECT * FROM {table_name}"))
            except OperationalError as e:
                if "no such table" in str(e).lower():
                    logger.info(f"Table {table_name} doesn't exist yet. No backup needed.")
                    backup[table_name] = []
                    continue
                raise
            columns = list(result.keys())
            rows = []
            for row in result.fetchall():
                row_dict = dict(zip(columns, row))
                for col in JSON_COLUMNS.intersection(row_dict):
                    if isinstance(row_dict[col], str):
                        try:
                            row_dict[col] = json.loads(row_dict[col])
                        except json.JSONDecodeError:
                            logger.warning(f"Column {table_name}.{col} holds invalid JSON; keeping raw text.")
                rows.append(row_dict)
            backup[table_name] = rows

    if any(backup.values()):
        backup_filename = f"bolonyay_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        with open(backup_filename, 'w') as f:
            json.dump(backup, f, indent=2, default=str)
        logger.info(f"Backed up {sum(len(rows) for rows in backup.values())} records to {backup_filename}")
    else:
        logger.info("No existing data to backup.")
    return backup


def recreate_tables():
    logger.info("Recreating tables...")
    with engine.connect() as connection:
        for table_name, _ in reversed(TABLES):
            connection.execute(text(f"DROP TABLE IF EXISTS {table_name}"))
        connection.commit()
    Base.metadata.create_all(bind=engine)
    logger.info("Created tables with current structure.")


def _parse_datetime(value):
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return value


def restore_data(backup):
    db = SessionLocal()
    restored_count = 0
    error_count = 0
    try:
        for table_name, model in TABLES:
            known_columns = set(model.__table__.columns.keys())
            for row_data in backup.get(table_name, []):
                kwargs = {key: value for key, value in row_data.items() if key in known_columns}
                for col in DATETIME_COLUMNS.intersection(kwargs):
                    kwargs[col] = _parse_datetime(kwargs[col])
                try:
                    with db.begin_nested():
                        db.add(model(**kwargs))
                    restored_count += 1
                except Exception as e:
                    logger.error(f"Error restoring {table_name} record {kwargs.get('id')}: {e}")
                    error_count += 1
        db.commit()
    finally:
        db.close()
    logger.info(f"Restored {restored_count} records successfully. {error_count} errors.")


def main():
    print("=" * 60)
    print("BoloNyay Database Rebuild Script")
    print("=" * 60)
    print()
    print("WARNING: This will recreate the users, sessions and cases tables!")
    print()

    response = input("Do you want to continue? (yes/no): ").strip().lower()
    if response not in ['yes', 'y']:
        print("Operation cancelled.")
        return 0

    try:
        load_settings()
        backup = backup_existing_data()
        recreate_tables()
        restore_data(backup)
        print()
        print("Database rebuild completed successfully!")
        return 0
    except Exception as e:
        print(f"Error during rebuild: {e}")
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
