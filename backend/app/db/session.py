"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url
_url = make_url(connection_string)

# Log connection info (without password)
logger.info(f"Database connection: {_url.render_as_string(hide_password=True)}")

engine_kwargs = {
    "echo": False,
    "pool_pre_ping": True,  # Verify connections before using
}
if _url.get_backend_name() == "sqlite":
    # Async workers and request threads share the file
    engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
else:
    engine_kwargs["pool_recycle"] = 3600

engine = create_engine(connection_string, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/customer-orders")
        def list_orders(db: Session = Depends(get_db)):
            return db.query(CustomerOrder).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
