# database.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker


Base = declarative_base()


def is_sqlite_memory(db_url: str) -> bool:
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _build_connect_args(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        # Storage calls run on worker threads.
        return {"check_same_thread": False}
    return {}


def mask_db_url(db_url: str) -> str:
    try:
        return str(make_url(db_url).set(password="***"))
    except Exception:
        return db_url


def build_engine(db_url: str) -> Engine:
    return create_engine(db_url, pool_pre_ping=True, future=True, connect_args=_build_connect_args(db_url))


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True, expire_on_commit=False)
