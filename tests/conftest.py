from __future__ import annotations

import json
from typing import Any, Dict

import pytest

from gitmind.controller import AppController
from gitmind.drive import DriveClient
from gitmind.github import GitHubClient
from gitmind.llm import AIClient, LLMRunner
from gitmind.llm.runner import LLMRequest
from gitmind.stores import HistoryStore, MemoryStore, TokenStore
from gitmind.auth import StaticTokenAuthenticator
from tests._fixtures.fake_services import FakeDrive, FakeGitHub


class ScriptedModel:
    """Runner that answers each schema with a canned JSON payload."""

    def __init__(self) -> None:
        self.calls: list[LLMRequest] = []
        self.replies: Dict[str, Any] = {
            "analysis": {
                "summary": "A demo project",
                "technologies": ["Python"],
                "architecture": "Single package",
                "suggestions": ["Add tests"],
            },
            "file_answer": {"answer": "It prints hello.", "proposed_content": None},
            "conversion": {
                "phpStructure": "api/ holds controllers",
                "apiEndpoints": [
                    {"method": "GET", "route": "/api/items", "phpController": "<?php class Items {}"}
                ],
                "reactUpdates": "Call /api/items",
                "setupGuide": "composer install",
                "generatedFiles": [
                    {"path": "api/Controllers/ItemsController.php", "content": "<?php // items"}
                ],
            },
        }
        self.failures: Dict[str, Exception] = {}

    def __call__(self, request: LLMRequest) -> str:
        self.calls.append(request)
        name = request.schema_name or ""
        if name in self.failures:
            raise self.failures[name]
        return json.dumps(self.replies[name])


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub(
        files={
            "README.md": "# Demo\n",
            "app.py": "print('hello')\n",
            "a/b.txt": "bee\n",
            "a/nested/deep.txt": "deep\n",
        }
    )


@pytest.fixture
def fake_drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture
def kv_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def controller(
    fake_github: FakeGitHub, fake_drive: FakeDrive, model: ScriptedModel, kv_store: MemoryStore
) -> AppController:
    tokens = TokenStore(kv_store)
    tokens.set("gh-token")
    return AppController(
        github_factory=lambda token: GitHubClient(token, transport=fake_github),
        ai=AIClient(LLMRunner(model="test-model", api_key=None, runner=model)),
        drive_factory=lambda token: DriveClient(token, transport=fake_drive),
        history=HistoryStore(kv_store),
        token_store=tokens,
        authenticator=StaticTokenAuthenticator("drive-token"),
    )
