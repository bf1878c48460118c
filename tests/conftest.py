"""Shared test fixtures."""

from collections.abc import Sequence
from pathlib import Path

import pytest
from pydantic import SecretStr

from glpub.models import (
    CreatedResource,
    IntegrationConfig,
    IssuePayload,
    MergeRequestPayload,
    Project,
    SerializedFile,
)
from glpub.providers.base import ProjectClient
from glpub.settings import IntegrationRegistry


class FakeClient(ProjectClient):
    """In-memory ProjectClient that records every call."""

    def __init__(self, base_url: str = "https://gitlab.com", credential=None) -> None:
        self.base_url = base_url
        self.credential = credential
        self.calls: list[tuple] = []
        self.project = Project(
            id=42,
            path_with_namespace="org/repo",
            web_url="https://gitlab.com/org/repo",
            default_branch="main",
        )
        self.lookup_error: Exception | None = None
        self.create_error: Exception | None = None
        self.commit_error: Exception | None = None
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def get_project(self, project_path: str) -> Project:
        self.calls.append(("get_project", project_path))
        if self.lookup_error:
            raise self.lookup_error
        return self.project

    async def create_issue(self, project_id: int, payload: IssuePayload) -> CreatedResource:
        self.calls.append(("create_issue", project_id, payload))
        if self.create_error:
            raise self.create_error
        return CreatedResource(iid=7, title=payload.title, web_url="https://gitlab.com/org/repo/-/issues/7")

    async def create_merge_request(self, project_id: int, payload: MergeRequestPayload) -> CreatedResource:
        self.calls.append(("create_merge_request", project_id, payload))
        if self.create_error:
            raise self.create_error
        return CreatedResource(iid=3, title=payload.title, web_url="https://gitlab.com/org/repo/-/merge_requests/3")

    async def commit_files(
        self,
        project_id: int,
        branch: str,
        start_branch: str,
        message: str,
        files: Sequence[SerializedFile],
    ) -> None:
        self.calls.append(("commit_files", project_id, branch, start_branch, message, list(files)))
        if self.commit_error:
            raise self.commit_error


@pytest.fixture
def integrations() -> IntegrationRegistry:
    return IntegrationRegistry(
        gitlab=[
            IntegrationConfig(host="gitlab.com", base_url="https://gitlab.com", token=SecretStr("glpat-config")),
            IntegrationConfig(host="gitlab.internal", base_url="https://gitlab.internal"),
        ]
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "readme.md").write_text("Welcome")
    return tmp_path
