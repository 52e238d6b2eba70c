"""
Alembic migrations build the same schema the models declare.
"""
from sqlalchemy import create_engine, inspect

from core.database import Base
from run_migrations import alembic_upgrade_head, get_alembic_config


def test_upgrade_head_creates_model_tables(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrations.db'}"
    cfg = get_alembic_config(url)
    cfg.attributes["configure_logger"] = False

    from alembic import command
    command.upgrade(cfg, "head")

    inspector = inspect(create_engine(url))
    tables = set(inspector.get_table_names())
    assert set(Base.metadata.tables) <= tables

    for name, table in Base.metadata.tables.items():
        migrated = {c["name"] for c in inspector.get_columns(name)}
        assert migrated == {c.name for c in table.columns}, name


def test_alembic_upgrade_head_is_idempotent(tmp_path):
    url = f"sqlite:///{tmp_path / 'twice.db'}"
    alembic_upgrade_head(url)
    alembic_upgrade_head(url)

    assert "training_plan" in inspect(create_engine(url)).get_table_names()
