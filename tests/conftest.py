from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from dronedispatch.core.config import Settings
from dronedispatch.db.database import Base, build_engine, build_session_factory
from dronedispatch.main import create_app


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def test_settings():
    return Settings(DATABASE_URL="sqlite://", BATTERY_AUDIT_ENABLED=False, ENVIRONMENT="test")


@pytest.fixture()
def client(test_settings):
    # Entering the client runs the lifespan, which creates the schema
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client
