# canteen/core/database.py
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, declarative_base
from canteen.core.config import settings
from canteen.core.errors import LedgerIntegrityError


def normalize_url(url: str) -> str:
    # Heroku-style URLs use the old scheme name
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def make_engine(url: str):
    url = normalize_url(url)
    connect_args = {}
    if url.startswith("sqlite"):
        # Writers wait on the database lock instead of failing straight away
        connect_args = {"check_same_thread": False, "timeout": settings.SQLITE_BUSY_TIMEOUT}
    return create_engine(url, connect_args=connect_args)


SQLALCHEMY_DATABASE_URL = normalize_url(settings.DATABASE_URL)

engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    # Local development shortcut; deployments run `alembic upgrade head`
    import canteen.models.sql_models  # noqa: F401  (registers tables on Base)
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def execute_guarded(db, statement):
    """
    Executes a ledger mutation. A CHECK constraint firing here means the
    conditional update let through a value the schema forbids, which is an
    invariant violation, not a user error.
    """
    try:
        return db.execute(statement)
    except IntegrityError as e:
        raise LedgerIntegrityError("Ledger constraint violated", cause=str(e.orig)) from e
