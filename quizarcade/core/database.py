import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from quizarcade.core.config import settings

logger = logging.getLogger(__name__)

def make_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, pool_pre_ping=True, echo=echo, connect_args=connect_args)

engine = make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind: Engine | None = None) -> None:
    """Create tables if they don't exist. Production deployments run migrations instead."""
    from quizarcade.models.orm import Base
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ready")
