import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tradecore.config import settings
from tradecore.database import build_engine, get_db
from tradecore.main import app
from tradecore.models.base import Base
from tradecore.services import transaction_service

# Use in-memory SQLite for tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

BUYER = "user-buyer"
SELLER = "user-seller"
STRANGER = "user-stranger"


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "storage_retry_backoff_ms", 0)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def open_tx(db):
    """Factory for open transactions between BUYER and SELLER."""
    counter = {"n": 0}

    def _open(buyer_id=BUYER, seller_id=SELLER):
        counter["n"] += 1
        return transaction_service.open_transaction(
            db,
            thread_id=f"thread-{counter['n']}",
            listing_id=f"listing-{counter['n']}",
            buyer_id=buyer_id,
            seller_id=seller_id,
        )

    return _open


@pytest.fixture()
def completed_tx(db, open_tx):
    def _complete(buyer_id=BUYER, seller_id=SELLER):
        transaction = open_tx(buyer_id, seller_id)
        transaction_service.mark_complete(db, transaction.id, buyer_id)
        return transaction_service.agree(db, transaction.id, seller_id)

    return _complete


@pytest.fixture()
def file_sessions(tmp_path, monkeypatch):
    """
    Session factory over a file-backed database, for tests that write from
    several threads at once.
    """
    monkeypatch.setattr(settings, "storage_retry_attempts", 25)
    monkeypatch.setattr(settings, "storage_retry_backoff_ms", 10)

    file_engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

    yield factory

    file_engine.dispose()
