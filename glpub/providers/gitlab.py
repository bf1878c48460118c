"""GitLab REST API v4 client."""

import base64
from collections.abc import Sequence
from urllib.parse import quote

import httpx

from glpub.errors import GitLabAuthError
from glpub.models import (
    CreatedResource,
    Credential,
    IssuePayload,
    MergeRequestPayload,
    Project,
    SerializedFile,
)
from glpub.providers.base import ProjectClient

API_PREFIX = "/api/v4"
TIMEOUT = 30


def auth_headers(credential: Credential) -> dict[str, str]:
    """Static tokens go in PRIVATE-TOKEN, OAuth tokens as a bearer."""
    secret = credential.value.get_secret_value()
    if credential.kind == "oauthToken":
        return {"Authorization": f"Bearer {secret}"}
    return {"PRIVATE-TOKEN": secret}


class GitLabClient(ProjectClient):
    def __init__(self, base_url: str, credential: Credential) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}{API_PREFIX}",
            headers={**auth_headers(credential), "Accept": "application/json"},
            timeout=TIMEOUT,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _check(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            raise GitLabAuthError(
                f"GitLab at {self.base_url} returned 401. Check the token configured for this integration."
            )
        response.raise_for_status()

    async def _get(self, path: str, params: dict | None = None) -> dict:
        response = await self._client.get(path, params=params or {})
        self._check(response)
        return response.json()

    async def _post(self, path: str, body: dict) -> dict:
        response = await self._client.post(path, json=body)
        self._check(response)
        return response.json()

    async def get_project(self, project_path: str) -> Project:
        # Namespaced paths must be URL-encoded into a single segment: group%2Fproject
        node = await self._get(f"/projects/{quote(project_path, safe='')}")
        return Project.model_validate(node)

    async def create_issue(self, project_id: int, payload: IssuePayload) -> CreatedResource:
        body: dict = {"title": payload.title, "labels": ",".join(payload.labels)}
        if payload.description is not None:
            body["description"] = payload.description
        node = await self._post(f"/projects/{project_id}/issues", body)
        return CreatedResource.model_validate(node)

    async def create_merge_request(self, project_id: int, payload: MergeRequestPayload) -> CreatedResource:
        body: dict = {
            "title": payload.title,
            "source_branch": payload.source_branch,
            "target_branch": payload.target_branch,
            "remove_source_branch": payload.remove_source_branch,
            "labels": ",".join(payload.labels),
        }
        if payload.description is not None:
            body["description"] = payload.description
        node = await self._post(f"/projects/{project_id}/merge_requests", body)
        return CreatedResource.model_validate(node)

    async def commit_files(
        self,
        project_id: int,
        branch: str,
        start_branch: str,
        message: str,
        files: Sequence[SerializedFile],
    ) -> None:
        actions = [
            {
                "action": "create",
                "file_path": f.path,
                "encoding": "base64",
                "content": base64.b64encode(f.content).decode("ascii"),
                "execute_filemode": f.executable,
            }
            for f in files
        ]
        await self._post(
            f"/projects/{project_id}/repository/commits",
            {"branch": branch, "start_branch": start_branch, "commit_message": message, "actions": actions},
        )
