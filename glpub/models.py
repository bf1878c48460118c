"""Shared pydantic models — the contract between the actions, the client and main.py."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr, computed_field

ONBOARDING_LABEL = "onboarding"


class RepoLocator(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str  # gitlab.com or a self-hosted instance
    owner: str  # group, subgroup path or username
    repo: str

    @property
    def project_path(self) -> str:
        return f"{self.owner}/{self.repo}"


class IntegrationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    base_url: str
    token: SecretStr | None = None


class Credential(BaseModel):
    """Token handed to the GitLab client.

    ``token`` is an administrator-configured static token, ``oauthToken`` a
    caller-supplied short-lived one. The client picks the auth header from the kind.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["token", "oauthToken"]
    value: SecretStr


class SerializedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str  # POSIX path relative to the serialized root
    content: bytes
    executable: bool = False


class IssuePayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    description: str | None

    # Every published issue carries the onboarding label; callers cannot change it
    @computed_field
    @property
    def labels(self) -> list[str]:
        return [ONBOARDING_LABEL]


class MergeRequestPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    description: str | None
    source_branch: str
    target_branch: str
    remove_source_branch: bool = False

    @computed_field
    @property
    def labels(self) -> list[str]:
        return [ONBOARDING_LABEL]


class Project(BaseModel):
    """Subset of the GitLab project resource."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    path_with_namespace: str
    web_url: str
    default_branch: str | None = None


class CreatedResource(BaseModel):
    """Returned by create_issue / create_merge_request — just what the caller needs."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    iid: int
    title: str
    web_url: str


class PublishResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: str
    project_path: str
    resource_url: str
