from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from configs import db
from db.models import *  # noqa: F401,F403
from app import app as flask_app

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# same URL resolution as the running app (.env, DATABASE_URL, sqlite fallback)
db_url = flask_app.config["SQLALCHEMY_DATABASE_URI"]
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))

target_metadata = db.metadata

COMPARE_KW = dict(
    compare_type=True,
    compare_server_default=True,
    # sqlite cannot ALTER most constraints in place
    render_as_batch=db_url.startswith("sqlite"),
)


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_KW
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata, **COMPARE_KW
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
