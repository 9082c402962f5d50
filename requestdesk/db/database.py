"""SQLite database setup and connection."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from pathlib import Path
from typing import Generator, Iterable
import logging

from requestdesk.config import UserSeed
from requestdesk.core.permissions import permissions_from_names

logger = logging.getLogger(__name__)

# Global engine and session factory
engine = None
SessionLocal = None


def init_db(data_dir: str = "/data", users: Iterable[UserSeed] = ()) -> None:
    """Initialize database connection."""
    global engine, SessionLocal

    # Ensure data directory exists and is writable
    data_path = Path(data_dir)
    try:
        data_path.mkdir(parents=True, exist_ok=True)
        test_file = data_path / ".write_test"
        try:
            test_file.touch()
            test_file.unlink()
        except OSError as e:
            raise PermissionError(f"Cannot write to {data_dir}: {str(e)}")
    except OSError as e:
        logger.error(f"Error creating data directory {data_dir}: {str(e)}")
        raise

    db_path = data_path / "requestdesk.db"
    logger.info(f"Initializing database at: {db_path}")

    # SQLite with check_same_thread=False for FastAPI
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

    # Create tables
    from requestdesk.db.models import Base
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_users(db, users)
    finally:
        db.close()
    logger.info("Database initialized successfully")


def seed_users(db: Session, users: Iterable[UserSeed]) -> int:
    """Crée ou met à jour les utilisateurs déclarés dans la config (clé: email)."""
    from requestdesk.db.models import User

    count = 0
    for seed in users:
        user = db.query(User).filter(User.email == seed.email).first()
        if user is None:
            user = User(email=seed.email)
            db.add(user)
        user.username = seed.username or seed.email.split("@")[0]
        user.api_key = seed.api_key
        user.permissions = permissions_from_names(seed.permissions)
        count += 1
    db.commit()
    if count:
        logger.info(f"Seeded {count} user(s) from configuration")
    return count


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    if SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
