"""Shared fixtures for cardflow tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cardflow.db import Base, get_session
from cardflow.errors import PersistenceError
from cardflow.gateway import InMemoryGateway
from cardflow.main import app
from cardflow.store import OptimisticStore


class FlakyGateway(InMemoryGateway):
    """In-memory gateway that fails chosen operations or card updates."""

    def __init__(self):
        super().__init__()
        self.failing = set()
        self.failing_cards = set()
        self.update_calls = []

    def _check(self, operation):
        if operation in self.failing:
            raise PersistenceError(operation, "injected failure", status_code=500)

    async def create_list(self, title):
        self._check("create_list")
        return await super().create_list(title)

    async def create_card(self, title, list_id):
        self._check("create_card")
        return await super().create_card(title, list_id)

    async def update_card(self, card_id, *, list_id=None, position=None):
        self.update_calls.append((card_id, list_id, position))
        self._check("update_card")
        if card_id in self.failing_cards:
            raise PersistenceError("update_card", "injected failure", status_code=500)
        return await super().update_card(card_id, list_id=list_id, position=position)

    async def delete_list(self, list_id):
        self._check("delete_list")
        return await super().delete_list(list_id)

    async def delete_card(self, card_id):
        self._check("delete_card")
        return await super().delete_card(card_id)


@pytest.fixture
def gateway():
    return FlakyGateway()


@pytest.fixture
def store(gateway):
    return OptimisticStore(gateway)


@pytest.fixture
def seeded_store(store):
    """Store with list A (3 cards) and list B (2 cards), all confirmed."""

    async def seed():
        a = await store.create_list("A")
        b = await store.create_list("B")
        for title in ("a0", "a1", "a2"):
            await store.create_card(a.id, title)
        for title in ("b0", "b1"):
            await store.create_card(b.id, title)
        return a, b

    asyncio.run(seed())
    return store


@pytest.fixture
def session_factory(tmp_path):
    # one file per test; endpoints run in worker threads with their own connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'cardflow.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def api(session_factory):
    def override_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)
