"""Unit tests for the SQLite persistence collaborator."""

from __future__ import annotations

import pytest

from errors import NotFoundError, ValidationError
from services.entity_store import EntityStore


@pytest.fixture
def store(tmp_path) -> EntityStore:
    store = EntityStore(tmp_path / "db" / "assistant.db")
    store.initialize()
    return store


def test_update_entity_field_sets_one_column(store: EntityStore) -> None:
    user_id = store.insert("users", {"name": "Ana", "email": "ana@example.com"})

    assert store.update_entity_field("users", user_id, "role", "admin") is True
    row = store.get("users", user_id)
    assert row["role"] == "admin"
    assert row["status"] == "active"


def test_unknown_entity_id_is_not_found(store: EntityStore) -> None:
    with pytest.raises(NotFoundError):
        store.update_entity_field("extensions", 404, "status", "active")


@pytest.mark.parametrize(
    ("table", "field"),
    [("users", "email"), ("sessions", "status"), ("models", "name")],
)
def test_only_whitelisted_fields_are_updatable(store: EntityStore, table: str, field: str) -> None:
    with pytest.raises(ValidationError):
        store.update_entity_field(table, 1, field, "x")


def test_constraint_violation_is_a_validation_error(store: EntityStore) -> None:
    ext_id = store.insert("extensions", {"name": "zed-zombie"})

    with pytest.raises(ValidationError):
        store.update_entity_field("extensions", ext_id, "status", "broken")
    assert store.get("extensions", ext_id)["status"] == "inactive"


def test_set_default_model_is_exclusive(store: EntityStore) -> None:
    first = store.insert("models", {"name": "gpt-4o-mini", "provider": "openai", "isDefault": 1})
    second = store.insert("models", {"name": "qwen2.5:0.5b", "provider": "ollama"})

    assert store.set_default_model(second) is True
    assert store.get("models", first)["isDefault"] == 0
    assert store.get("models", second)["isDefault"] == 1


def test_set_default_on_unknown_model_is_not_found(store: EntityStore) -> None:
    with pytest.raises(NotFoundError):
        store.set_default_model(99)


def test_default_model_follows_set_default(store: EntityStore) -> None:
    assert store.get_default_model() is None

    store.insert("models", {"name": "gpt-4o-mini", "provider": "openai", "isDefault": 1})
    local = store.insert("models", {"name": "qwen2.5:0.5b", "provider": "ollama"})
    assert store.get_default_model() == "gpt-4o-mini"

    store.set_default_model(local)
    assert store.get_default_model() == "qwen2.5:0.5b"


def test_inactive_default_model_is_ignored(store: EntityStore) -> None:
    model_id = store.insert("models", {"name": "llama3:8b", "provider": "ollama", "isDefault": 1})
    store.update_entity_field("models", model_id, "isActive", 0)

    assert store.get_default_model() is None
