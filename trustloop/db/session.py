from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from trustloop.core.config import settings
from trustloop.core.logger import log


def build_engine(database_url: str, **kwargs) -> Engine:
    # Sync handlers run in FastAPI's threadpool; SQLite must allow cross-thread use
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, **kwargs)


engine = build_engine(settings.DATABASE_URL)


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables(bind: Engine = None):
    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    log.info(f"Database ready: {len(SQLModel.metadata.tables)} tables on {bind.url.render_as_string(hide_password=True)}")
