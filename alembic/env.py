import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool
from sqlalchemy.engine import make_url

from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from app.core.config import settings  # type: ignore

# MIGRATION_DATABASE_URL lets migrations run with different credentials than the app.
sqlalchemy_url = os.getenv("MIGRATION_DATABASE_URL") or settings.sqlalchemy_url
safe_url = make_url(sqlalchemy_url).render_as_string(hide_password=True)
print(f"[Alembic] Connecting to: {safe_url}", file=sys.stderr)

config.set_main_option("sqlalchemy.url", sqlalchemy_url.replace("%", "%%"))

from app.db.base import Base
from app.db.models import *  # noqa: F401,F403

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL without a DBAPI connection."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    try:
        connectable = engine_from_config(
            config.get_section(config.config_ini_section, {}),
            prefix="sqlalchemy.",
            poolclass=pool.NullPool,
        )

        with connectable.connect() as connection:
            context.configure(
                connection=connection, target_metadata=target_metadata
            )

            with context.begin_transaction():
                context.run_migrations()
    except Exception as e:
        print("\n[ERROR] Database connection failed:", file=sys.stderr)
        print(f"  URL: {safe_url}", file=sys.stderr)
        print(f"\n  Error: {str(e)}", file=sys.stderr)
        print("\n  Troubleshooting:", file=sys.stderr)
        print("  1. Check that the database server is running", file=sys.stderr)
        print("  2. Verify MYSQL_* or DATABASE_URL in .env", file=sys.stderr)
        print("  3. Set MIGRATION_DATABASE_URL to migrate with other credentials", file=sys.stderr)
        raise


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
