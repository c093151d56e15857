"""CI helper to validate Alembic migrations on a clean database.

Runs upgrade -> downgrade -> upgrade so both directions of every revision are
exercised. Defaults to a throwaway SQLite file.

Usage:
    python scripts/check_migrations.py
"""

import os
from pathlib import Path

from alembic.config import main as alembic_main
from sqlalchemy.engine import make_url


def main() -> None:
    temp_db = Path(".alembic_ci.db")
    os.environ.setdefault("APP_ENV", "test")

    db_url = os.getenv("ALEMBIC_DATABASE_URL") or f"sqlite:///{temp_db}"
    url = make_url(db_url)
    os.environ["ALEMBIC_DATABASE_URL"] = db_url

    if url.drivername.startswith("sqlite") and temp_db.exists():
        temp_db.unlink()

    try:
        alembic_main(argv=["upgrade", "head"])
        alembic_main(argv=["downgrade", "base"])
        alembic_main(argv=["upgrade", "head"])
    finally:
        if temp_db.exists():
            temp_db.unlink()


if __name__ == "__main__":
    main()
