"""
Pytest configuration for the Uraan Chat test suite.

Provides:
- An in-memory SQLite engine swapped into uraan_chat.database
- A fake S3 client behind the real StorageGateway
- Two signed-in users (alice, bob) with bearer headers
- A fake upstream LLM patched into uraan_chat.services.llm_client
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, Optional

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from uraan_chat import database
from uraan_chat.core.deps import get_storage
from uraan_chat.main import app
from uraan_chat.models.auth import AuthSession
from uraan_chat.services import llm_client
from uraan_chat.services.storage_service import StorageGateway

ALICE_TOKEN = "session-alice"
BOB_TOKEN = "session-bob"


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client methods the gateway uses."""

    def __init__(self):
        self.objects: Dict[str, int] = {}
        self.presigned: list[tuple[str, Dict[str, Any], int]] = []
        self.deleted: list[str] = []

    def generate_presigned_url(self, operation: str, Params: Dict[str, Any], ExpiresIn: int) -> str:
        self.presigned.append((operation, Params, ExpiresIn))
        return f"https://storage.test/{Params['Bucket']}/{Params['Key']}?op={operation}&expires={ExpiresIn}"

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": self.objects[Key]}

    def delete_object(self, Bucket: str, Key: str) -> None:
        self.deleted.append(Key)
        self.objects.pop(Key, None)


class FakeLLM:
    """Scripted upstream: records calls, yields configured events."""

    def __init__(self):
        self.events: list[Dict[str, Any]] = [
            {"type": "reasoning", "content": "Thinking about greetings."},
            {"type": "token", "content": "Hello"},
            {"type": "token", "content": " there!"},
            {"type": "usage", "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}},
        ]
        self.fail_after: Optional[int] = None
        self.title: str = "Friendly Greeting Exchange"
        self.title_error: Optional[Exception] = None
        self.stream_calls: list[Dict[str, Any]] = []
        self.complete_calls: list[Dict[str, Any]] = []

    def stream_chat(self, model, messages, credential=None) -> Iterator[Dict[str, Any]]:
        self.stream_calls.append({"model": model, "messages": messages, "credential": credential})
        for index, event in enumerate(self.events):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("upstream exploded")
            yield event

    def complete(self, model, messages, credential=None, max_tokens=None, temperature=None) -> str:
        self.complete_calls.append({
            "model": model,
            "messages": messages,
            "credential": credential,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.title_error is not None:
            raise self.title_error
        return self.title


@pytest.fixture
def engine(monkeypatch):
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(database, "engine", test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session(engine) -> Iterator[Session]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def users(engine):
    expires = datetime.utcnow() + timedelta(hours=1)
    with Session(engine) as s:
        s.add(AuthSession(token=ALICE_TOKEN, user_id="alice", expires_at=expires))
        s.add(AuthSession(token=BOB_TOKEN, user_id="bob", expires_at=expires))
        s.add(AuthSession(
            token="session-expired",
            user_id="carol",
            expires_at=datetime.utcnow() - timedelta(minutes=1),
        ))
        s.commit()
    return {"alice": ALICE_TOKEN, "bob": BOB_TOKEN}


@pytest.fixture
def alice_headers(users):
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}


@pytest.fixture
def bob_headers(users):
    return {"Authorization": f"Bearer {BOB_TOKEN}"}


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def storage(s3):
    return StorageGateway(s3, bucket="test-bucket", url_ttl_seconds=60)


@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr(llm_client, "stream_chat", fake.stream_chat)
    monkeypatch.setattr(llm_client, "complete", fake.complete)
    return fake


@pytest.fixture
def client(engine, storage, users):
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()
