from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine


def make_engine(database_url: str, *, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Streamlit serves reruns from worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    # Import models inside to avoid circular imports.
    from . import records  # noqa: F401

    SQLModel.metadata.create_all(engine)

