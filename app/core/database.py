import logging

from sqlalchemy import JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)

# -----------------------
# Database URL
# -----------------------
DATABASE_URL = settings.sqlalchemy_database_url

# Hide password in logs
safe_db_url = make_url(DATABASE_URL).render_as_string(hide_password=True)
logger.info(f"Connecting to database: {safe_db_url}")


# -----------------------
# SQLAlchemy engine
# -----------------------
def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            # One shared connection so every session sees the same in-memory db
            options["poolclass"] = StaticPool
        return options

    return {
        "poolclass": QueuePool,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "connect_args": {"connect_timeout": 5},
    }


engine = create_engine(DATABASE_URL, echo=settings.db_echo, **_engine_options(DATABASE_URL))


# -----------------------
# Force UTC for all PostgreSQL connections
# -----------------------
if engine.dialect.name == "postgresql":

    @event.listens_for(engine, "connect")
    def set_timezone(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.close()


# -----------------------
# Session and Base
# -----------------------
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON everywhere else
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def check_connection() -> None:
    try:
        with engine.connect():
            logger.info("Database connection successful ✅")
    except Exception as e:
        logger.error(f"Failed to connect to database ❌: {str(e)}")
        raise


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
