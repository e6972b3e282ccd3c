"""Create the portal's PostgreSQL database if it does not exist. Run before first start."""

from __future__ import annotations

import logging
import sys

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from auracargo.config import settings

logger = logging.getLogger("ensure_db")


def target_database(database_url: str) -> tuple[str, dict] | None:
    """Return (db_name, connection params for the maintenance db), or None when not PostgreSQL."""
    url = make_url(database_url)
    if not url.drivername.startswith("postgresql"):
        return None
    return url.database or settings.db_name, {
        "host": url.host or "localhost",
        "port": url.port or 5432,
        "user": url.username or "postgres",
        "password": url.password or "postgres",
    }


def main() -> int:
    target = target_database(settings.get_database_url())
    if target is None:
        logger.info("Not a PostgreSQL database URL; nothing to create")
        return 0
    db_name, conn_params = target

    try:
        conn = psycopg2.connect(dbname="postgres", **conn_params)
    except psycopg2.OperationalError as e:
        logger.warning("Cannot connect to PostgreSQL: %s", e)
        return 0  # non-fatal so the app can still start and report the problem

    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cur = conn.cursor()
    try:
        cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (db_name,))
        if cur.fetchone():
            logger.info("Database '%s' already exists", db_name)
            return 0
        cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
        logger.info("Created database '%s'", db_name)
    except psycopg2.Error as e:
        logger.error("Failed to create database '%s': %s", db_name, e)
        return 1
    finally:
        cur.close()
        conn.close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
