"""Shared test utilities and fixtures for the editor assistant backend."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

import main
from models.diff import DiffProposal
from models.stream import DiffEvent, DoneEvent, TokenEvent, parse_event
from routers.dependencies import get_assistant_service
from services.config_manager import ConfigManager

SAMPLE_PATCH = "--- a/app.py\n+++ b/app.py\n@@ -1,2 +1,2 @@\n def main():\n-    pass\n+    return 1\n"


class FakeAssistant:
    """Replays a fixed event list instead of calling a model provider."""

    def __init__(self, events=None, error: Exception | None = None) -> None:
        self.events = events or []
        self.error = error
        self.requests = []

    async def respond(self, request):
        self.requests.append(request)
        for event in self.events:
            yield event
        if self.error is not None:
            raise self.error


def sample_events() -> list:
    return [
        TokenEvent(content="Here"),
        TokenEvent(content=" is"),
        DiffEvent(diff=DiffProposal(id="d1", file_path="app.py", patch=SAMPLE_PATCH)),
        DoneEvent(),
    ]


def parse_sse(text: str) -> list:
    """Decode every data frame of an SSE body into stream events."""
    return [parse_event(line[len("data: ") :]) for line in text.splitlines() if line.startswith("data: ")]


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # sse-starlette keeps a class-level exit event bound to the first event loop
    AppStatus.should_exit_event = None
    yield


@pytest.fixture
def config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setenv("EDITOR_ASSISTANT_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("EDITOR_ASSISTANT_ENV", raising=False)
    ConfigManager.reset_instance()
    yield tmp_path
    ConfigManager.reset_instance()


@pytest.fixture
def fake_assistant() -> FakeAssistant:
    return FakeAssistant(sample_events())


@pytest.fixture
def client(config_dir, fake_assistant):
    main.app.dependency_overrides[get_assistant_service] = lambda: fake_assistant
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()
