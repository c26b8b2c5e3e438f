# migrations/env.py
from logging.config import fileConfig

from alembic import context

from models.base import Base, make_engine_from_env
from models import schema  # noqa: F401 - registers the tables on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
_COMPARE = dict(compare_type=True, compare_server_default=True)


def run_migrations_offline():
    engine = make_engine_from_env()
    context.configure(
        url=engine.url.render_as_string(hide_password=False),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=engine.dialect.name == "sqlite",
        **_COMPARE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = make_engine_from_env()
    try:
        with engine.connect() as connection:
            # sqlite cannot ALTER constraints in place
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
                **_COMPARE,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
