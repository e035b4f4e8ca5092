"""
Prefect flow applying the Alembic schema migrations.

Runs from inside the deployed worker so the schema is upgraded with the
same database settings the ingestion flow uses.

Responsibility: Schema upgrades as a scheduled/triggered flow
"""

from datetime import datetime
from typing import Optional

from alembic import command
from alembic.config import Config
from prefect import flow, task, get_run_logger

from ..config import DatabaseConfig, settings


def make_alembic_config(config_path: str = "alembic.ini", db_config: Optional[DatabaseConfig] = None) -> Config:
    """
    Build an Alembic Config bound to the configured database.

    Raises:
        RuntimeError: When no database URL can be derived
    """
    db_config = db_config or settings.db
    database_url = db_config.sync_connection_string
    if not database_url:
        raise RuntimeError("No database URL configured for Alembic. Set DATABASE_URL.")

    config = Config(config_path)
    config.set_main_option("sqlalchemy.url", database_url)
    return config


@task(name="run_alembic_upgrade", retries=1, retry_delay_seconds=30)
def run_alembic_upgrade_task(revision: str = "head", config_path: str = "alembic.ini", sql: bool = False) -> dict:
    logger = get_run_logger()
    logger.info(f"Running Alembic upgrade to revision '{revision}'")

    command.upgrade(make_alembic_config(config_path), revision, sql=sql)

    logger.info(f"Alembic upgrade to '{revision}' completed")
    return {"revision": revision, "config_path": config_path, "sql_mode": sql}


@flow(
    name="constituant-migrations",
    description="Upgrade the database schema to the requested revision",
    log_prints=True,
)
def migration_flow(revision: str = "head", config_path: str = "alembic.ini", sql: bool = False) -> dict:
    """
    Example:
        prefect deployment run constituant-migrations/default --param revision=head
    """
    start_time = datetime.utcnow()
    task_result = run_alembic_upgrade_task(revision=revision, config_path=config_path, sql=sql)
    end_time = datetime.utcnow()

    return {
        "status": "success",
        "started_at": start_time.isoformat(),
        "duration_seconds": (end_time - start_time).total_seconds(),
        **task_result,
    }


if __name__ == "__main__":
    migration_flow()
