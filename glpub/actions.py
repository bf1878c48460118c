"""Scaffolder template actions that publish workspace content to GitLab.

Each action is invoked once per pipeline step with an ActionContext. The
handler runs strictly in order:

    locate -> credential -> serialize -> assemble -> resolve project -> create

Project lookup failures propagate unchanged (backend failure of the step).
Creation failures are re-raised as RemoteCreateError so the pipeline can show
the user which project was targeted.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from glpub.credentials import resolve_credential
from glpub.errors import InputError, RemoteCreateError
from glpub.files import resolve_safe_child_path, serialize_directory_contents
from glpub.locator import parse_repo_url
from glpub.models import Credential, IssuePayload, MergeRequestPayload, Project, PublishResult
from glpub.payload import DescriptionPolicy, assemble_issue, assemble_merge_request
from glpub.providers.base import ProjectClient
from glpub.providers.gitlab import GitLabClient
from glpub.settings import IntegrationRegistry

ISSUE_ACTION_ID = "publish:gitlab:create-issue"
MERGE_REQUEST_ACTION_ID = "publish:gitlab:merge-request"

DEPRECATED_PROJECTID_WARNING = 'Property "projectid" is deprecated and no longer needed to publish to GitLab'

ClientFactory = Callable[[str, Credential], ProjectClient]


# ---------------------------------------------------------------------------
# Inputs and outputs
# ---------------------------------------------------------------------------


class _ActionInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    repo_url: str = Field(
        alias="repoUrl",
        title="Repository Location",
        description="Accepts the format 'gitlab.com/group_name/project_name' where 'project_name' is the "
        "repository name and 'group_name' is a group or username",
    )
    target_path: str = Field(
        alias="targetPath",
        title="Repository Subdirectory",
        description="Subdirectory of the workspace to publish",
    )
    title: str
    projectid: str | None = Field(
        default=None,
        title="projectid",
        description="Deprecated. Project ID/Name(slug) of the GitLab project, overrides the path from repoUrl",
        json_schema_extra={"deprecated": True},
    )
    token: str | None = Field(
        default=None,
        title="Authentication Token",
        description="OAuth token to use for authorization to GitLab instead of the integration token",
    )
    description_policy: DescriptionPolicy | None = Field(
        default=None,
        alias="descriptionPolicy",
        title="Description Policy",
        description="'concatenate' joins every published file, 'single-file' uses the file named by targetPath",
    )


class IssueInput(_ActionInput):
    title: str = Field(title="Issue Title", description="The title of the issue")
    description: str | None = Field(
        default=None,
        title="Issue Description",
        description="The description of the issue, overrides the workspace content",
    )
    # Accepted for templates written against the merge request variant; issues have no branch
    branch_name: str | None = Field(
        default=None,
        alias="branchName",
        title="Branch Name",
        description="Ignored when creating an issue",
        json_schema_extra={"deprecated": True},
    )
    remove_source_branch: bool = Field(
        default=False,
        alias="removeSourceBranch",
        title="Delete source branch",
        description="Ignored when creating an issue",
        json_schema_extra={"deprecated": True},
    )


class MergeRequestInput(_ActionInput):
    title: str = Field(title="Merge Request Name", description="The name for the merge request")
    branch_name: str = Field(alias="branchName", title="Source Branch Name", description="The branch to commit to")
    target_branch: str | None = Field(
        default=None,
        alias="targetBranch",
        title="Target Branch Name",
        description="The branch to merge into. Defaults to the project's default branch",
    )
    description: str | None = Field(
        default=None,
        title="Merge Request Description",
        description="The description of the merge request, overrides the workspace content",
    )
    remove_source_branch: bool = Field(
        default=False,
        alias="removeSourceBranch",
        title="Delete source branch",
        description="Option to delete source branch once the MR has been merged. Default: false",
    )


def _output_schema(url_key: str, url_title: str) -> dict:
    return {
        "type": "object",
        "properties": {
            "projectid": {"title": "GitLab Project id/Name(slug)", "type": "string"},
            "projectPath": {"title": "GitLab Project path", "type": "string"},
            url_key: {"title": url_title, "type": "string"},
        },
    }


InputT = TypeVar("InputT", bound=_ActionInput)


@dataclass
class ActionContext(Generic[InputT]):
    """What the pipeline hands to a handler for one step."""

    workspace_path: Path
    input: InputT
    logger: logging.Logger
    outputs: dict[str, Any] = field(default_factory=dict)

    def output(self, key: str, value: Any) -> None:
        self.outputs[key] = value


@dataclass(frozen=True)
class TemplateAction(Generic[InputT]):
    id: str
    description: str
    input_model: type[InputT]
    schema: dict
    handler: Callable[[ActionContext[InputT]], Awaitable[PublishResult]]


# ---------------------------------------------------------------------------
# Shared handler steps
# ---------------------------------------------------------------------------


def _project_path(ctx: ActionContext, default: str) -> str:
    if ctx.input.projectid:
        ctx.logger.warning(DEPRECATED_PROJECTID_WARNING)
        return ctx.input.projectid
    return default


def _policy(ctx: ActionContext, default: DescriptionPolicy) -> DescriptionPolicy:
    return ctx.input.description_policy or default


def _report(ctx: ActionContext, project_path: str, url_key: str, url: str) -> PublishResult:
    # projectid is kept alongside projectPath for templates written against the old output
    ctx.output("projectid", project_path)
    ctx.output("projectPath", project_path)
    ctx.output(url_key, url)
    return PublishResult(project_id=project_path, project_path=project_path, resource_url=url)


async def _resolve_project(client: ProjectClient, ctx: ActionContext, project_path: str) -> Project:
    project = await client.get_project(project_path)
    ctx.logger.debug("Resolved %s to project id %s", project_path, project.id)
    return project


# ---------------------------------------------------------------------------
# Action factories
# ---------------------------------------------------------------------------


def create_publish_gitlab_issue_action(
    integrations: IntegrationRegistry,
    policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE,
    client_factory: ClientFactory = GitLabClient,
) -> TemplateAction[IssueInput]:
    """Action that opens an onboarding issue whose body is the content under targetPath."""

    async def handler(ctx: ActionContext[IssueInput]) -> PublishResult:
        locator = parse_repo_url(ctx.input.repo_url, integrations)
        project_path = _project_path(ctx, locator.project_path)
        config, credential = resolve_credential(integrations, locator.host, ctx.input.token)

        target = resolve_safe_child_path(ctx.workspace_path, ctx.input.target_path)
        files = await serialize_directory_contents(target, gitignore=True)
        ctx.logger.info("Serialized %d file(s) from %s", len(files), ctx.input.target_path)

        issue: IssuePayload = assemble_issue(
            files,
            ctx.input.title,
            ctx.input.target_path,
            _policy(ctx, policy),
            description=ctx.input.description,
        )

        async with client_factory(config.base_url, credential) as client:
            project = await _resolve_project(client, ctx, project_path)
            ctx.logger.info("Creating issue %r in %s", issue.title, project_path)
            try:
                created = await client.create_issue(project.id, issue)
            except Exception as e:
                raise RemoteCreateError(f"Creating the issue to {project_path} failed: {e}", project_path) from e

        ctx.logger.info("Issue created: %s", created.web_url)
        return _report(ctx, project_path, "issueUrl", created.web_url)

    return TemplateAction(
        id=ISSUE_ACTION_ID,
        description="Creates a GitLab issue from the contents of a workspace directory",
        input_model=IssueInput,
        schema={
            "input": IssueInput.model_json_schema(by_alias=True),
            "output": _output_schema("issueUrl", "Issue URL"),
        },
        handler=handler,
    )


def create_publish_gitlab_merge_request_action(
    integrations: IntegrationRegistry,
    policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE,
    client_factory: ClientFactory = GitLabClient,
) -> TemplateAction[MergeRequestInput]:
    """Action that commits targetPath to branchName and opens a merge request for it."""

    async def handler(ctx: ActionContext[MergeRequestInput]) -> PublishResult:
        locator = parse_repo_url(ctx.input.repo_url, integrations)
        project_path = _project_path(ctx, locator.project_path)
        config, credential = resolve_credential(integrations, locator.host, ctx.input.token)

        target = resolve_safe_child_path(ctx.workspace_path, ctx.input.target_path)
        files = await serialize_directory_contents(target, gitignore=True)
        ctx.logger.info("Serialized %d file(s) from %s", len(files), ctx.input.target_path)

        async with client_factory(config.base_url, credential) as client:
            project = await _resolve_project(client, ctx, project_path)
            target_branch = ctx.input.target_branch or project.default_branch or "main"
            mr: MergeRequestPayload = assemble_merge_request(
                files,
                title=ctx.input.title,
                target_path=ctx.input.target_path,
                branch_name=ctx.input.branch_name,
                target_branch=target_branch,
                description=ctx.input.description,
                remove_source_branch=ctx.input.remove_source_branch,
                policy=_policy(ctx, policy),
            )
            ctx.logger.info("Creating merge request %r in %s", mr.title, project_path)
            try:
                await client.commit_files(project.id, mr.source_branch, target_branch, mr.title, files)
                created = await client.create_merge_request(project.id, mr)
            except Exception as e:
                raise RemoteCreateError(
                    f"Creating the merge request to {project_path} failed: {e}", project_path
                ) from e

        ctx.logger.info("Merge request created: %s", created.web_url)
        return _report(ctx, project_path, "mergeRequestUrl", created.web_url)

    return TemplateAction(
        id=MERGE_REQUEST_ACTION_ID,
        description="Commits the contents of a workspace directory to a branch and opens a GitLab merge request",
        input_model=MergeRequestInput,
        schema={
            "input": MergeRequestInput.model_json_schema(by_alias=True),
            "output": _output_schema("mergeRequestUrl", "MergeRequest(MR) URL"),
        },
        handler=handler,
    )


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def build_context(
    action: TemplateAction[InputT],
    workspace_path: Path,
    raw_input: dict[str, Any],
    logger: logging.Logger,
) -> ActionContext[InputT]:
    """Validate raw input against the action's input model."""
    try:
        validated = action.input_model.model_validate(raw_input)
    except ValidationError as e:
        raise InputError(f"Invalid input passed to action {action.id}: {e}") from e
    return ActionContext(workspace_path=workspace_path, input=validated, logger=logger)


async def run_action(
    action: TemplateAction[InputT],
    workspace_path: Path,
    raw_input: dict[str, Any],
    logger: logging.Logger,
) -> ActionContext[InputT]:
    ctx = build_context(action, workspace_path, raw_input, logger)
    await action.handler(ctx)
    return ctx
