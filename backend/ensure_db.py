"""Create the FruitFlow PostgreSQL database before first start, if missing."""

from __future__ import annotations

import sys

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from fruitflow.config import settings


def main() -> int:
    url = make_url(settings.get_database_url())
    if not url.drivername.startswith("postgresql"):
        print(f"ensure_db: nothing to do for {url.drivername}")
        return 0

    db_name = url.database or settings.db_name
    try:
        # The maintenance database always exists; CREATE DATABASE runs from there.
        conn = psycopg2.connect(
            dbname="postgres",
            host=url.host or settings.db_host,
            port=url.port or settings.db_port,
            user=url.username or settings.db_username,
            password=url.password or settings.db_password,
        )
    except psycopg2.Error as exc:
        print(f"ensure_db: PostgreSQL unreachable, skipping: {exc}", file=sys.stderr)
        return 0

    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (db_name,))
            if cur.fetchone() is None:
                cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
                print(f"ensure_db: created {db_name}")
    except psycopg2.Error as exc:
        print(f"ensure_db: could not create {db_name}: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
