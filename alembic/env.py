"""
env.py — Alembic environment for the RFQ Tracker

The database URL always comes from rfq_tracker settings (DATABASE_URL),
never from alembic.ini, so migrations hit the same database as the app.

Business Rules:
- One transaction per migration run
- SQLite gets batch mode so ALTER-style operations work there too
- Column type changes are part of autogenerate comparisons

Called by: alembic CLI
Depends on: rfq_tracker.models (Base.metadata), rfq_tracker.config
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from rfq_tracker.config import get_settings
from rfq_tracker.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = get_settings().database_url
config.set_main_option("sqlalchemy.url", DATABASE_URL)


def _context_options() -> dict:
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": DATABASE_URL.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_context_options())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
