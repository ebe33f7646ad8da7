import atexit
import os
import tempfile
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, create_engine

from app.core import database
from app.core.config import settings
from app.core.database import DBSession, get_db
from app.main import app
from app.zoho.api import ZohoClient, get_zoho_client
from app.zoho.store import SQLModelEntityStore
from tests.factories import AccountFactory, ContactFactory, DealFactory
from tests.zoho.helpers import FakeZoho

# Use file-based SQLite to avoid in-memory connection issues
test_db_file = tempfile.NamedTemporaryFile(delete=False, suffix='.db')
engine = create_engine(
    f'sqlite:///{test_db_file.name}',
    connect_args={'check_same_thread': False},
)
TestingSessionLocal = sessionmaker(class_=DBSession, autocommit=False, autoflush=False, bind=engine)

# Clean up temp file on exit
atexit.register(lambda: os.unlink(test_db_file.name))


@pytest.fixture(autouse=True)
def use_test_session_factory(monkeypatch):
    """Use test session factory for all tests"""
    monkeypatch.setattr(database, 'SessionCls', TestingSessionLocal)


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch):
    monkeypatch.setattr('app.zoho.api.time.sleep', lambda s: None)


@pytest.fixture(name='session')
def session_fixture() -> Generator[DBSession, None, None]:
    """Create a new database session for a test"""
    SQLModel.metadata.create_all(bind=engine)

    with TestingSessionLocal() as session:
        yield session

    SQLModel.metadata.drop_all(bind=engine)


@pytest.fixture(name='db')
def db_fixture(session: DBSession):
    return session


@pytest.fixture
def store(db: DBSession):
    return SQLModelEntityStore(db)


@pytest.fixture
def fake_zoho():
    return FakeZoho()


@pytest.fixture
def zoho_client(fake_zoho: FakeZoho):
    client = ZohoClient(transport=fake_zoho.transport)
    yield client
    client.close()


@pytest.fixture(name='client')
def client_fixture(session: DBSession, zoho_client: ZohoClient):
    """Create a test client talking to the fake Zoho"""

    def get_session_override():
        return session

    app.dependency_overrides[get_db] = get_session_override
    app.dependency_overrides[get_zoho_client] = lambda: zoho_client
    client = TestClient(app, headers={'Authorization': f'Bearer {settings.api_key}'})
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def test_account(db: DBSession):
    return AccountFactory.create_with_db(db, name='Acme', zoho_id='4150868000000001001')


@pytest.fixture
def test_contact(db: DBSession, test_account):
    return ContactFactory.create_with_db(db, account_id=test_account.id, zoho_id='4150868000000002001')


@pytest.fixture
def test_deal(db: DBSession, test_account, test_contact):
    return DealFactory.create_with_db(
        db, account_id=test_account.id, contact_id=test_contact.id, zoho_id='4150868000000003001'
    )
