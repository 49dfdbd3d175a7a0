"""Shared test fixtures for the n8n-sync test suite."""

import copy
import dataclasses
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from n8n_sync.errors import APIError, NotFoundError
from n8n_sync.workflow.models import Tag, Workflow

# Sample IDs used across tests
SAMPLE_API_KEY = "n8n_api_test123"
SAMPLE_INSTANCE_URL = "http://n8n.test:5678"
SAMPLE_WORKFLOW_ID = "wf_abc123"
SAMPLE_TAG_ID = "tag_def456"


# ============================================================================
# Mock Response Data
# ============================================================================

MOCK_WORKFLOW = {
    "id": SAMPLE_WORKFLOW_ID,
    "name": "Lead Intake",
    "active": False,
    "nodes": [
        {
            "id": "node_1",
            "name": "Webhook",
            "type": "n8n-nodes-base.webhook",
            "typeVersion": 1,
            "position": [250, 300],
            "parameters": {"path": "lead-intake"},
        }
    ],
    "connections": {},
    "settings": {"executionOrder": "v1"},
    "tags": [
        {
            "id": SAMPLE_TAG_ID,
            "name": "sales",
            "createdAt": "2024-01-15T10:00:00.000Z",
            "updatedAt": "2024-01-15T10:00:00.000Z",
        }
    ],
    "createdAt": "2024-01-15T10:00:00.000Z",
    "updatedAt": "2024-01-16T08:30:00.000Z",
}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def mock_http_client():
    """Create a mock httpx.AsyncClient."""
    client = AsyncMock()

    # Default successful response
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {}
    response.raise_for_status = MagicMock()

    client.get = AsyncMock(return_value=response)
    client.post = AsyncMock(return_value=response)
    client.put = AsyncMock(return_value=response)
    client.delete = AsyncMock(return_value=response)

    return client


@pytest.fixture
def mock_n8n_client(mock_http_client):
    """Create an N8NClient with initialized APIs and a mocked transport."""
    from n8n_sync.api.client import N8NClient
    from n8n_sync.api.tags import TagsAPI
    from n8n_sync.api.workflows import WorkflowsAPI

    client = N8NClient(api_key=SAMPLE_API_KEY, instance_url=SAMPLE_INSTANCE_URL)
    client._client = mock_http_client
    client._workflows = WorkflowsAPI(client)
    client._tags = TagsAPI(client)

    return client


@pytest.fixture
def mock_response():
    """Factory fixture to create mock HTTP responses."""
    def _create_response(data: Any, status_code: int = 200):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = data
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            from httpx import HTTPStatusError
            response.raise_for_status.side_effect = HTTPStatusError(
                f"HTTP {status_code}", request=MagicMock(), response=response
            )
        return response
    return _create_response


@pytest.fixture
def mock_error_response():
    """Factory fixture to create common error responses."""
    def _create_error(error_type: str):
        from httpx import HTTPStatusError

        error_configs = {
            "not_found": {
                "status_code": 404,
                "data": {"message": "Not Found"},
            },
            "validation": {
                "status_code": 400,
                "data": {"message": "request/body must have required property 'nodes'"},
            },
            "unauthorized": {
                "status_code": 401,
                "data": {"message": "'X-N8N-API-KEY' header required"},
            },
            "forbidden": {
                "status_code": 403,
                "data": {"message": "Forbidden"},
            },
            "server_error": {
                "status_code": 500,
                "data": {"message": "Internal server error"},
            },
        }

        config = error_configs.get(error_type, error_configs["server_error"])
        response = MagicMock()
        response.status_code = config["status_code"]
        response.json.return_value = config["data"]
        response.text = str(config["data"])
        response.raise_for_status = MagicMock(
            side_effect=HTTPStatusError(
                f"HTTP {config['status_code']}",
                request=MagicMock(),
                response=response
            )
        )
        return response
    return _create_error


# ============================================================================
# In-memory n8n
# ============================================================================

MUTATING_CALLS = {"create", "update", "activate", "deactivate", "delete", "set_tags", "create_tag"}


class FakeWorkflowsAPI:
    """Workflows API stub backed by a dict; records every call."""

    def __init__(self, server: "FakeN8N"):
        self._server = server

    async def list_all(self):
        self._server.calls.append(("list_all",))
        return [copy.deepcopy(w) for w in self._server.store.values()]

    async def get(self, workflow_id):
        self._server.calls.append(("get", workflow_id))
        if workflow_id not in self._server.store:
            raise NotFoundError("API error 404: Not Found", 404)
        return copy.deepcopy(self._server.store[workflow_id])

    async def create(self, workflow):
        self._server.calls.append(("create", workflow.name))
        workflow_id = str(self._server.next_id)
        self._server.next_id += 1
        stored = dataclasses.replace(copy.deepcopy(workflow), id=workflow_id, active=False, tags=[])
        self._server.store[workflow_id] = stored
        return copy.deepcopy(stored)

    async def update(self, workflow_id, workflow):
        self._server.calls.append(("update", workflow_id))
        current = self._server.store[workflow_id]
        stored = dataclasses.replace(
            copy.deepcopy(workflow), id=workflow_id, active=current.active, tags=current.tags
        )
        self._server.store[workflow_id] = stored
        return copy.deepcopy(stored)

    async def activate(self, workflow_id):
        self._server.calls.append(("activate", workflow_id))
        self._server.store[workflow_id].active = True
        return copy.deepcopy(self._server.store[workflow_id])

    async def deactivate(self, workflow_id):
        self._server.calls.append(("deactivate", workflow_id))
        self._server.store[workflow_id].active = False
        return copy.deepcopy(self._server.store[workflow_id])

    async def delete(self, workflow_id):
        self._server.calls.append(("delete", workflow_id))
        if workflow_id in self._server.fail_deletes:
            raise APIError("API error 500: Internal server error", 500)
        self._server.store.pop(workflow_id, None)

    async def set_tags(self, workflow_id, tag_ids):
        self._server.calls.append(("set_tags", workflow_id, tuple(tag_ids)))
        names = {t.id: t.name for t in self._server.tags_store}
        self._server.store[workflow_id].tags = [Tag(id=i, name=names.get(i, "")) for i in tag_ids]
        return copy.deepcopy(self._server.store[workflow_id].tags)


class FakeTagsAPI:
    """Tags API stub; records every call."""

    def __init__(self, server: "FakeN8N"):
        self._server = server

    async def list(self):
        self._server.calls.append(("list_tags",))
        return [copy.deepcopy(t) for t in self._server.tags_store]

    async def create(self, name):
        self._server.calls.append(("create_tag", name))
        tag = Tag(id=f"tag_{len(self._server.tags_store) + 1}", name=name)
        self._server.tags_store.append(tag)
        return copy.deepcopy(tag)


class FakeN8N:
    """In-memory stand-in for N8NClient with ``workflows`` and ``tags``."""

    def __init__(self, workflows: list[Workflow] | None = None, tags: list[Tag] | None = None):
        self.store: dict[str, Workflow] = {w.id: copy.deepcopy(w) for w in workflows or []}
        self.tags_store: list[Tag] = list(tags or [])
        self.calls: list[tuple] = []
        self.fail_deletes: set[str] = set()
        self.next_id = 100
        self.workflows = FakeWorkflowsAPI(self)
        self.tags = FakeTagsAPI(self)

    @property
    def mutating_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in MUTATING_CALLS]

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_n8n():
    """Factory fixture for an in-memory n8n instance."""
    def _create(workflows: list[Workflow] | None = None, tags: list[Tag] | None = None) -> FakeN8N:
        return FakeN8N(workflows, tags)
    return _create


# ============================================================================
# CLI Testing Fixtures
# ============================================================================

@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real N8N_* variables and config files out of tests."""
    for var in ("N8N_API_KEY", "N8N_INSTANCE_URL", "N8N_DEBUG", "N8N_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
