# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from canteen.core.database import Base, make_engine, get_db
from canteen.core.money import to_cents
from canteen.core.retry import RetryPolicy
from canteen.models import sql_models  # noqa: F401
from canteen.models.enums import Category
from canteen.models.sql_models import MenuItem
from canteen.services import wallet_ledger

import main


@pytest.fixture
def engine(tmp_path):
    # A file database so worker threads get their own connections
    engine = make_engine(f"sqlite:///{tmp_path / 'canteen_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fast_policy():
    return RetryPolicy(retry_limit=2, backoff="fixed", base_delay=0)


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = _get_db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_item(db):
    def _make(name="Chicken Adobo", price="40.00", stock=3, category=Category.MEALS, active=True):
        item = MenuItem(
            name=name,
            category=category,
            price_cents=to_cents(price),
            stock=stock,
            active=active,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make


@pytest.fixture
def fund(db):
    def _fund(user_id, amount):
        wallet_ledger.credit(db, user_id, to_cents(amount), reason="seed")
        db.commit()
    return _fund


def stock_of(session, item_id):
    return session.get(MenuItem, item_id, populate_existing=True).stock


def student(user_id="stu-1"):
    return {"X-User-Id": user_id}


def admin(user_id="admin-1"):
    return {"X-User-Id": user_id, "X-User-Role": "admin"}
