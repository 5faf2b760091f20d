from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from invoicehub.core.config import settings
from invoicehub.database.database import Base

# Register every model on Base.metadata
import invoicehub.modules.company.models
import invoicehub.modules.auth.models
import invoicehub.modules.clients.models
import invoicehub.modules.products.models
import invoicehub.modules.staff.models
import invoicehub.modules.transactions.models
import invoicehub.modules.ledger.models
import invoicehub.modules.quick_templates.models

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
