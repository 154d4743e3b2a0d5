from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# alembic.ini prepends backend/ to sys.path, so the app package imports directly.
from app.core.config import get_settings
from app.db.base import Base
import app.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    """`alembic -x url=...` wins over DATABASE_URL / backend/.env."""
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url


def configure_context(url: str, **options) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most columns in place.
        render_as_batch=url.startswith("sqlite"),
        **options,
    )


def run_offline(url: str) -> None:
    configure_context(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            configure_context(url, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


url = database_url()
config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
if context.is_offline_mode():
    run_offline(url)
else:
    run_online(url)
