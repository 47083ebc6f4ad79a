"""
Pytest fixtures: an isolated data root, ledger and Flask app per test.
"""

import pytest

from guard import RequestContext
from ledger import Ledger
from server import create_app
from store import DocumentStore

TEST_USER = "admin"
TEST_PASSWORD = "secret"


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    return DocumentStore(tmp_path / "data")


@pytest.fixture
def ledger(tmp_path) -> Ledger:
    led = Ledger(tmp_path / "users.yml", rounds=4)
    led.register(TEST_USER, TEST_PASSWORD)
    return led


@pytest.fixture
def signed_in(store, ledger) -> RequestContext:
    return RequestContext(TEST_USER, ledger, store)


@pytest.fixture
def anonymous(store, ledger) -> RequestContext:
    return RequestContext(None, ledger, store)


@pytest.fixture
def app_overrides(tmp_path) -> dict:
    return {
        "data_root": str(tmp_path / "data"),
        "ledger_path": str(tmp_path / "users.yml"),
        "secret_key": "test-secret",
        "bcrypt_rounds": 4,
    }


@pytest.fixture
def app(app_overrides, ledger):
    flask_app = create_app(app_overrides)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess["username"] = TEST_USER
    return client
