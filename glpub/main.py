"""glpub CLI — runs the GitLab publish actions against a local workspace."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from glpub.actions import (
    ISSUE_ACTION_ID,
    MERGE_REQUEST_ACTION_ID,
    TemplateAction,
    create_publish_gitlab_issue_action,
    create_publish_gitlab_merge_request_action,
    run_action,
)
from glpub.errors import InputError
from glpub.payload import DescriptionPolicy
from glpub.settings import CONFIG_PATH, get_settings, load_integrations

app = typer.Typer(help="glpub: publish scaffolded workspace content as GitLab issues and merge requests", no_args_is_help=True)

logger = logging.getLogger("glpub")

WorkspaceOpt = Annotated[
    Path,
    typer.Option("--workspace", "-w", help="Workspace root the target path is resolved against"),
]
TargetPathOpt = Annotated[str, typer.Option("--target-path", "-p", help="Subdirectory of the workspace to publish")]
TokenOpt = Annotated[str | None, typer.Option("--token", help="OAuth token, overrides the integration token")]
ProjectIdOpt = Annotated[str | None, typer.Option("--projectid", help="Deprecated: project path override", hidden=True)]
PolicyOpt = Annotated[
    DescriptionPolicy | None,
    typer.Option("--policy", help="How the description is built from the published files"),
]


@app.callback()
def main(verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False) -> None:
    _configure_logging(logging.DEBUG if verbose else logging.INFO)


def _configure_logging(level: int) -> None:
    # Idempotent: repeated invocations in one process must not stack handlers
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _drop_unset(raw: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in raw.items() if v is not None}


def _actions() -> dict[str, TemplateAction]:
    settings = get_settings()
    integrations = load_integrations(settings)
    policy = settings.description_policy
    return {
        ISSUE_ACTION_ID: create_publish_gitlab_issue_action(integrations, policy),
        MERGE_REQUEST_ACTION_ID: create_publish_gitlab_merge_request_action(integrations, policy),
    }


def _run(action_id: str, workspace: Path, raw_input: dict[str, Any]) -> None:
    try:
        action = _actions()[action_id]
        ctx = asyncio.run(run_action(action, workspace, _drop_unset(raw_input), logger))
    except InputError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    table = Table(title="Outputs")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in ctx.outputs.items():
        table.add_row(key, str(value))
    rprint(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("create-issue")
def create_issue(
    repo_url: Annotated[str, typer.Argument(help="Repository location, e.g. gitlab.com/group/project")],
    title: Annotated[str, typer.Option("--title", "-t", help="Issue title")],
    target_path: TargetPathOpt,
    workspace: WorkspaceOpt = Path("."),
    token: TokenOpt = None,
    projectid: ProjectIdOpt = None,
    policy: PolicyOpt = None,
) -> None:
    """Open an onboarding issue built from the files under --target-path."""
    _run(
        ISSUE_ACTION_ID,
        workspace,
        {
            "repoUrl": repo_url,
            "targetPath": target_path,
            "title": title,
            "token": token,
            "projectid": projectid,
            "descriptionPolicy": policy,
        },
    )


@app.command("merge-request")
def merge_request(
    repo_url: Annotated[str, typer.Argument(help="Repository location, e.g. gitlab.com/group/project")],
    title: Annotated[str, typer.Option("--title", "-t", help="Merge request title")],
    branch: Annotated[str, typer.Option("--branch", "-b", help="Branch to commit the files to")],
    target_path: TargetPathOpt,
    description: Annotated[str | None, typer.Option("--description", "-d", help="Merge request description")] = None,
    target_branch: Annotated[
        str | None, typer.Option("--target-branch", help="Branch to merge into (default: project default)")
    ] = None,
    remove_source_branch: Annotated[
        bool, typer.Option("--remove-source-branch", help="Delete the source branch once merged")
    ] = False,
    workspace: WorkspaceOpt = Path("."),
    token: TokenOpt = None,
    projectid: ProjectIdOpt = None,
    policy: PolicyOpt = None,
) -> None:
    """Commit the files under --target-path to --branch and open a merge request."""
    _run(
        MERGE_REQUEST_ACTION_ID,
        workspace,
        {
            "repoUrl": repo_url,
            "targetPath": target_path,
            "title": title,
            "branchName": branch,
            "targetBranch": target_branch,
            "description": description,
            "removeSourceBranch": remove_source_branch,
            "token": token,
            "projectid": projectid,
            "descriptionPolicy": policy,
        },
    )


@app.command("integrations")
def integrations_cmd() -> None:
    """List configured GitLab integrations."""
    registry = load_integrations()
    configs = registry.gitlab.list()
    if not configs:
        rprint(f"[yellow]No GitLab integrations configured.[/yellow] Add {escape('[[integrations.gitlab]]')} to {CONFIG_PATH}")
        return

    table = Table(title="GitLab Integrations")
    table.add_column("Host", style="cyan")
    table.add_column("Base URL")
    table.add_column("Token", style="dim")
    for config in configs:
        table.add_row(config.host, config.base_url, "set" if config.token else "—")
    rprint(table)


@app.command("schema")
def schema_cmd(action_id: Annotated[str, typer.Argument(help=f"{ISSUE_ACTION_ID} or {MERGE_REQUEST_ACTION_ID}")]) -> None:
    """Print the input/output JSON schema of an action."""
    actions = _actions()
    if action_id not in actions:
        rprint(f"[red]Unknown action '{action_id}'. Valid: {', '.join(actions)}[/red]")
        raise typer.Exit(1)
    typer.echo(json.dumps(actions[action_id].schema, indent=2))
