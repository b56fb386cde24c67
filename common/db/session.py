from contextlib import contextmanager
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..models.base import Base


def build_engine(database_url: str) -> Engine:
    # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, future=True)


def make_session_factory(engine: Engine):
    """Return a ``get_session()`` context manager bound to ``engine``.

    Each ``with`` block is one transaction: committed when the block exits
    normally, rolled back when it raises.
    """

    session_local = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def get_session():
        session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return get_session


def init_db(engine: Engine) -> None:
    # register every model on Base.metadata before create_all
    from ..models import (  # noqa: F401
        cart,
        cart_item,
        category,
        contact_message,
        news,
        order,
        partner,
        product,
        service,
        team_member,
        testimonial,
    )

    Base.metadata.create_all(bind=engine)
