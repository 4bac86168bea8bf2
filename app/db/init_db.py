import logging
from typing import Optional

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_database(database_url: Optional[str] = None) -> bool:
    """
    Make sure the database named in `database_url` (default: the engine's
    DATABASE_URL) exists, creating it through the server's maintenance
    `postgres` database when it does not.

    Only PostgreSQL URLs are handled; anything else is left to the engine.
    Returns True when a database was created.
    """
    url = make_url(database_url or settings.DATABASE_URL)
    if url.get_backend_name() != "postgresql":
        return False

    try:
        con = psycopg2.connect(
            host=url.host,
            port=url.port,
            user=url.username,
            password=url.password,
            dbname="postgres",
        )
    except psycopg2.Error as e:
        # The maintenance DB may be off-limits while the target already exists
        logger.error("Could not reach PostgreSQL to check %s: %s", url.database, e)
        return False

    try:
        con.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with con.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (url.database,))
            if cur.fetchone():
                logger.info("Database %s already exists.", url.database)
                return False
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))
    except psycopg2.Error as e:
        logger.error("Error creating database %s: %s", url.database, e)
        return False
    finally:
        con.close()

    logger.info("Database %s created.", url.database)
    return True
