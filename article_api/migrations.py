"""
Schema migration runner.

Wraps ``alembic upgrade head`` so the app (``RUN_MIGRATIONS=true``) and
``scripts/migrate.py`` share one code path.  alembic records applied
revisions in ``alembic_version``, so repeated runs only apply what is
new.  Failures propagate; the caller must not serve traffic after one.

The revision scripts ship inside the package (``article_api/alembic``)
and are addressed as a package resource, so an installed wheel migrates
the same way a source checkout does.
"""
import logging

from alembic import command
from alembic.config import Config

from article_api.config import settings

logger = logging.getLogger(__name__)

SCRIPT_LOCATION = "article_api:alembic"


def build_alembic_config(database_url: str | None = None) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", SCRIPT_LOCATION)
    cfg.set_main_option("sqlalchemy.url", database_url or settings.DATABASE_URL)
    return cfg


def run_migrations(database_url: str | None = None) -> None:
    """Apply every pending revision to the database at *database_url*."""
    cfg = build_alembic_config(database_url)
    logger.info("Applying database migrations from %s", SCRIPT_LOCATION)
    command.upgrade(cfg, "head")
    logger.info("Database migrations completed")
