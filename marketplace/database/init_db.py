import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

from marketplace.core.startup import bootstrap
from marketplace.database.db import get_active_database_url

logger = logging.getLogger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def init_db(revision: str = "head") -> None:
    """Bring the marketplace schema up to `revision` with Alembic."""
    bootstrap()
    database_url = get_active_database_url()
    command.upgrade(build_alembic_config(database_url), revision)
    logger.info(
        "database.migrated",
        extra={
            "event": "database.migrated",
            "revision": revision,
            "database_url_scheme": database_url.split("://", 1)[0],
        },
    )


if __name__ == "__main__":
    init_db()
