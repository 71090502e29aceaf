"""Shared test fixtures.

인메모리 SQLite(StaticPool) + Mock 블록체인/AI 클라이언트.
"""

from collections.abc import Callable, Generator
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from toremain.db.database import enable_sqlite_foreign_keys, get_db, init_db
from toremain.db.models import (
    ItemCategory,
    ItemDefinition,
    ItemType,
    User,
    UserEquipItem,
    UserGameProfile,
)
from toremain.main import app
from toremain.services.ai import MockAIClient
from toremain.services.blockchain import MockBlockchainClient

DEFAULT_PASSWORD = "secret-pw"


@pytest.fixture()
def db_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Raw database session for direct DB setup and assertions."""
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blockchain() -> MockBlockchainClient:
    return MockBlockchainClient()


@pytest.fixture()
def ai_client() -> MockAIClient:
    return MockAIClient()


@pytest.fixture()
def client(
    db_engine: Engine, blockchain: MockBlockchainClient, ai_client: MockAIClient
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the in-memory database and mock clients."""
    session_factory = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.state.blockchain_client = blockchain
    app.state.ai_client = ai_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def signup(client: TestClient) -> Callable[..., tuple[int, dict[str, str]]]:
    """API 로 가입 + 로그인. (user_id, Authorization 헤더) 반환."""

    def _signup(
        username: str = "player1",
        wallet_address: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
    ) -> tuple[int, dict[str, str]]:
        res = client.post(
            "/api/register",
            json={
                "username": username,
                "password": password,
                "wallet_address": wallet_address,
            },
        )
        assert res.status_code == 200, res.text
        login = client.post(
            "/api/login", json={"username": username, "password": password}
        )
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return res.json()["user_id"], {"Authorization": f"Bearer {token}"}

    return _signup


# ── DB seed helpers ───────────────────────────────────────


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    counter = iter(range(1, 10_000))

    def _make(
        username: Optional[str] = None, wallet_address: Optional[str] = None
    ) -> User:
        user = User(
            username=username or f"user{next(counter)}",
            password="not-a-hash",
            wallet_address=wallet_address,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_profile(db_session: Session) -> Callable[..., UserGameProfile]:
    def _make(user: User, profile_name: str = "Hero", **fields: Any) -> UserGameProfile:
        profile = UserGameProfile(
            user_id=user.id,
            profile_name=profile_name,
            equipped_items={},
            skill_info={},
            **fields,
        )
        db_session.add(profile)
        db_session.commit()
        return profile

    return _make


@pytest.fixture()
def make_definition(db_session: Session) -> Callable[..., ItemDefinition]:
    def _make(
        name: str = "Iron Sword",
        type: ItemType = ItemType.EQUIPMENT,
        category: ItemCategory = ItemCategory.WEAPON,
        **fields: Any,
    ) -> ItemDefinition:
        definition = ItemDefinition(name=name, type=type, category=category, **fields)
        db_session.add(definition)
        db_session.commit()
        return definition

    return _make


@pytest.fixture()
def make_equip_item(db_session: Session) -> Callable[..., UserEquipItem]:
    def _make(
        profile: UserGameProfile, definition: ItemDefinition, **fields: Any
    ) -> UserEquipItem:
        item = UserEquipItem(
            user_id=profile.user_id,
            profile_id=profile.id,
            item_def_id=definition.id,
            **fields,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make
