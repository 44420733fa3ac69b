import itertools

import pytest
from fastapi.testclient import TestClient

from taskboard.config import Settings
from taskboard.db import init_db, make_engine, make_session_factory
from taskboard.main import create_app
from taskboard.storage import Storage

_counter = itertools.count(1)


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", jwt_secret="test-secret", log_level="WARNING")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def storage():
    engine = make_engine("sqlite://")
    init_db(engine)
    session = make_session_factory(engine)()
    try:
        yield Storage(session)
    finally:
        session.close()
        engine.dispose()


def register(client, username=None, password="pw123"):
    n = next(_counter)
    username = username or f"user{n}"
    resp = client.post(
        "/api/users/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "full_name": f"User {n}",
        },
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {"Authorization": f"Bearer {body['token']}"}, body


@pytest.fixture
def alice(client):
    headers, _ = register(client, "alice")
    return headers


@pytest.fixture
def bob(client):
    headers, _ = register(client, "bob")
    return headers


def make_board(client, headers, title="Work", **extra):
    resp = client.post("/api/boards", json={"title": title, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def make_list(client, headers, board_id, title="Todo"):
    resp = client.post("/api/lists", json={"board_id": board_id, "title": title}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def make_card(client, headers, list_id, title="Task", **extra):
    resp = client.post("/api/cards", json={"list_id": list_id, "title": title, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
