"""Database configuration with separate config and J-REIT databases."""

import math
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()

# Mean earth radius used by MySQL's ST_Distance_Sphere
EARTH_RADIUS_METERS = 6370986.0

POOL_SIZE = int(os.getenv("JREIT_DB_POOL_SIZE", "5"))


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": POOL_SIZE, "pool_pre_ping": True}


# ===== CONFIG DATABASE =====
# Stores request logs
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./jreit_config.db")

engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== J-REIT DATABASE =====
# Stores buildings, corporations, transactions, appraisals and histories
JREIT_DATABASE_URL = os.getenv("JREIT_DATABASE_URL", "sqlite:///./jreit.db")

jreit_engine = create_engine(JREIT_DATABASE_URL, **_engine_kwargs(JREIT_DATABASE_URL))
JReitSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=jreit_engine)
JReitBase = declarative_base()


# ===== SQLITE SPATIAL FUNCTIONS =====


def _point(longitude, latitude):
    if longitude is None or latitude is None:
        return None
    return f"{longitude} {latitude}"


def _distance_sphere(point_a, point_b):
    """Great-circle distance in metres between two points encoded by ``_point``."""
    if point_a is None or point_b is None:
        return None
    lng1, lat1 = (math.radians(float(v)) for v in point_a.split(" "))
    lng2, lat2 = (math.radians(float(v)) for v in point_b.split(" "))
    a = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def register_sqlite_functions(target: Engine) -> None:
    """Expose MySQL's Point and ST_Distance_Sphere on SQLite connections."""
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.create_function("Point", 2, _point)
        dbapi_connection.create_function("ST_Distance_Sphere", 2, _distance_sphere)


register_sqlite_functions(jreit_engine)


# ===== SESSION GENERATORS =====


def get_db():
    """Get config database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_jreit_db():
    """Get J-REIT database session."""
    db = JReitSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def create_all_tables():
    """Create tables in both databases."""
    # Import models to ensure they're registered with Base classes
    from app.logging.models import Log  # noqa: F401
    from app.jreit import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    JReitBase.metadata.create_all(bind=jreit_engine)


def init_db():
    """Initialize database tables on application start."""
    create_all_tables()
