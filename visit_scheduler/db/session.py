from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from visit_scheduler.core.config import settings
from visit_scheduler.db.base_class import Base  # noqa: F401

# Create engine
# For PostgreSQL, we might need to adjust pool_size and max_overflow in production
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
