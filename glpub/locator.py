"""Parse repository locations like 'gitlab.com/group/project'."""

from urllib.parse import parse_qs, urlsplit

from glpub.errors import ConfigurationError, InputError
from glpub.models import RepoLocator
from glpub.settings import IntegrationRegistry


def _split_repo_url(repo_url: str) -> tuple[str, str, str] | None:
    """Return (host, owner, repo) or None when the shape is not recognised.

    Accepts:
    - "gitlab.com/group/project" (optionally with scheme, trailing slash or .git)
    - "gitlab.com/group/subgroup/project" — owner is "group/subgroup"
    - "gitlab.com?owner=group&repo=project"
    """
    cleaned = repo_url.strip()
    if "://" not in cleaned:
        cleaned = f"https://{cleaned}"
    parts = urlsplit(cleaned)
    host = parts.netloc

    if parts.query:
        query = parse_qs(parts.query)
        owner = query.get("owner", [""])[0].strip("/")
        repo = query.get("repo", [""])[0]
        if parts.path.strip("/"):
            return None
    else:
        segments = [s for s in parts.path.removesuffix("/").removesuffix(".git").split("/") if s]
        if len(segments) < 2:
            return None
        owner, repo = "/".join(segments[:-1]), segments[-1]

    if not (host and owner and repo):
        return None
    return host, owner, repo


def parse_repo_url(repo_url: str, integrations: IntegrationRegistry) -> RepoLocator:
    split = _split_repo_url(repo_url)
    if split is None:
        raise InputError(
            f"Invalid repo URL passed to publisher: {repo_url!r}. "
            "Expected 'gitlab.com/group_name/project_name'"
        )
    host, owner, repo = split
    if integrations.gitlab.by_host(host) is None:
        raise ConfigurationError(
            f"No matching integration configuration for host {host}, please check your integrations config"
        )
    return RepoLocator(host=host, owner=owner, repo=repo)
