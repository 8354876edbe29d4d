# alembic/env.py

from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

# --- Строка подключения и .env берутся из настроек приложения ---
from src.settings import DATABASE_URL

# --- Импортируем Base и ВСЕ МОДЕЛИ ---
from src.db import Base
from src.models import (  # noqa: F401
    user,
    group,
    group_member,
    group_member_history,
    movie,
    watch,
    watch_group,
    event,
    watchlist_item,
    # если будут новые модели, обязательно допиши сюда!
)

# --- Конфигурируем Alembic ---
config = context.config

# --- Логирование Alembic ---
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

db_url = DATABASE_URL


def run_migrations_offline():
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(
        db_url,
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            # SQLite не умеет ALTER COLUMN: пересоздаём таблицы
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
