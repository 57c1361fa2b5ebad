"""
Tests for the SQL document store and repositories
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from contenthub.core.db import Base
from contenthub.core.errors import StorageError
from contenthub.schemas import BlogPost, HeroSection
from contenthub.services.document_store import FirestoreDocumentStore, SqlDocumentStore
from contenthub.services.repositories import HeroRepo, PostRepo

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_store.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def store(db_session):
    return SqlDocumentStore(db_session)

def test_get_set_delete(store):
    assert store.get("missing") is None

    store.set("greeting", {"text": "hello", "tags": ["a"]})
    assert store.get("greeting") == {"text": "hello", "tags": ["a"]}

    store.set("greeting", {"text": "bye"})
    assert store.get("greeting") == {"text": "bye"}

    store.delete("greeting")
    assert store.get("greeting") is None

def test_delete_missing_key_is_noop(store):
    store.delete("never-set")
    assert store.get("never-set") is None

def test_returned_documents_are_copies(store):
    store.set("doc", {"items": [1, 2]})

    doc = store.get("doc")
    doc["items"].append(3)

    assert store.get("doc") == {"items": [1, 2]}

def test_scan_by_prefix_treats_underscore_literally(store):
    store.set("event_1", {"id": "1"})
    store.set("event_2", {"id": "2"})
    store.set("eventX3", {"id": "3"})
    store.set("attendee_1_a", {"id": "a"})

    found = sorted(doc["id"] for doc in store.scan_by_prefix("event_"))

    assert found == ["1", "2"]
    assert store.scan_by_prefix("form_") == []

def test_hero_repo_roundtrip(store):
    repo = HeroRepo(store)
    assert repo.get() is None

    repo.save(HeroSection(title="Hi", subtitle="There"))

    assert repo.get().title == "Hi"
    assert store.get("hero_section")["subtitle"] == "There"

def test_post_repo_orders_newest_first(store):
    repo = PostRepo(store)
    base = datetime(2030, 1, 1, tzinfo=timezone.utc)
    for i in range(3):
        repo.save(BlogPost(
            id=f"p{i}", title=f"Post {i}", slug=f"post-{i}", author_id="u1",
            created_at=base + timedelta(days=i), updated_at=base,
        ))

    assert [p.id for p in repo.list_all()] == ["p2", "p1", "p0"]
    assert repo.find_by_slug("post-1").id == "p1"
    assert repo.find_by_slug("nope") is None
    assert store.get("blog_post_p0")["slug"] == "post-0"

def test_malformed_document_raises_storage_error(store):
    store.set("blog_post_bad", {"title": "No id or dates"})

    with pytest.raises(StorageError):
        PostRepo(store).get("bad")

def test_firestore_prefix_scan_uses_field_filters():
    client = MagicMock()
    collection = client.collection.return_value
    first = collection.where.return_value
    doc = MagicMock()
    doc.to_dict.return_value = {"key": "event_1", "value": {"id": "1"}}
    first.where.return_value.get.return_value = [doc]

    found = FirestoreDocumentStore(client).scan_by_prefix("event_")

    assert found == [{"id": "1"}]
    client.collection.assert_called_with("kv_store")
    lower = collection.where.call_args
    upper = first.where.call_args
    assert lower.args == () and upper.args == ()
    assert isinstance(lower.kwargs["filter"], FieldFilter)
    assert (lower.kwargs["filter"].field_path, lower.kwargs["filter"].op_string, lower.kwargs["filter"].value) == (
        "key", ">=", "event_",
    )
    assert (upper.kwargs["filter"].op_string, upper.kwargs["filter"].value) == ("<", "event_\uf8ff")
