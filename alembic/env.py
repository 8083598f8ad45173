# alembic/env.py
from logging.config import fileConfig
import os
import pathlib
import sys

from alembic import context
from sqlalchemy import engine_from_config, pool

BASE_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

config = context.config
if getattr(config, "config_file_name", None):
    fileConfig(config.config_file_name)

from wsgi import app
from guestportal.extensions import db


def _database_url():
    url = os.getenv("DATABASE_URL") or app.config.get("SQLALCHEMY_DATABASE_URI")
    # Flask-SQLAlchemy resolves relative sqlite files against instance/; do the same here
    if url and url.startswith("sqlite:///") and not url.startswith("sqlite:////"):
        instance_dir = pathlib.Path(app.instance_path)
        instance_dir.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{(instance_dir / url[len('sqlite:///'):]).as_posix()}"
    return url


with app.app_context():
    import guestportal.models  # noqa: F401
    url = _database_url()
    target_metadata = db.metadata

# ALTER TABLE on sqlite needs batch mode
BATCH = bool(url) and url.startswith("sqlite")


def run_migrations_offline():
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True,
                      compare_type=True, render_as_batch=BATCH)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = engine_from_config({"sqlalchemy.url": url}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata,
                          compare_type=True, render_as_batch=BATCH)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
