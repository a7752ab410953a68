# order_engine/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from order_engine.utils.settings import DATABASE_URL, DB_ECHO


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": DB_ECHO}
    # sqlite w pamięci: jedno połączenie współdzielone między wątkami (testy, TestClient)
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db():
    #sesja per request, zamykana po odpowiedzi
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # rejestracja modeli w Base.metadata przed create_all
    import order_engine.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
