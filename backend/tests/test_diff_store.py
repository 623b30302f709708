"""Unit tests for proposed diff lifecycle."""

from __future__ import annotations

import pytest

from errors import NotFoundError, PatchConflictError
from models.diff import DiffProposal, DiffStatus
from services.diff_store import DiffStore

from .conftest import SAMPLE_PATCH

CURRENT = "def main():\n    pass\n"


@pytest.fixture
def store() -> DiffStore:
    store = DiffStore()
    store.add(DiffProposal(id="d1", file_path="app.py", patch=SAMPLE_PATCH))
    return store


def test_apply_returns_new_content_and_marks_applied(store: DiffStore) -> None:
    outcome = store.apply("d1", CURRENT)

    assert outcome.status is DiffStatus.APPLIED
    assert outcome.content == "def main():\n    return 1\n"
    assert "d1" not in store


def test_conflicting_apply_keeps_proposal_held(store: DiffStore) -> None:
    with pytest.raises(PatchConflictError):
        store.apply("d1", "def main():\n    return 2\n")

    assert "d1" in store


def test_discard_twice_fails_the_second_time(store: DiffStore) -> None:
    assert store.discard("d1").status is DiffStatus.DISCARDED

    with pytest.raises(NotFoundError):
        store.discard("d1")


@pytest.mark.parametrize("action", ["apply", "discard"])
def test_unknown_id_is_not_found(store: DiffStore, action: str) -> None:
    with pytest.raises(NotFoundError, match="missing"):
        if action == "apply":
            store.apply("missing", CURRENT)
        else:
            store.discard("missing")


def test_applied_diff_cannot_be_applied_again(store: DiffStore) -> None:
    store.apply("d1", CURRENT)

    with pytest.raises(NotFoundError):
        store.apply("d1", CURRENT)
    assert store.has_seen("d1")
