"""Build issue and merge request bodies from serialized workspace files."""

from collections.abc import Sequence
from enum import StrEnum

from glpub.models import IssuePayload, MergeRequestPayload, SerializedFile


class DescriptionPolicy(StrEnum):
    """How an issue or merge request description is built from the published files.

    Serialized paths are relative to the targetPath directory, so SINGLE_FILE only
    matches when that directory holds a file whose relative path equals targetPath
    itself, e.g. targetPath "docs" publishing "docs/docs". Any other layout gives
    no description.
    """

    CONCATENATE = "concatenate"  # every file's content, in collector order, no separator
    SINGLE_FILE = "single-file"  # content of the file whose path equals targetPath


def _decode(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def build_description(
    files: Sequence[SerializedFile],
    target_path: str,
    policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE,
) -> str | None:
    """Return the description text for files under the given policy.

    SINGLE_FILE compares against the raw targetPath input, not a resolved path,
    and returns None when nothing matches.
    """
    match policy:
        case DescriptionPolicy.CONCATENATE:
            return "".join(_decode(f.content) for f in files)
        case DescriptionPolicy.SINGLE_FILE:
            for f in files:
                if f.path == target_path:
                    return _decode(f.content)
            return None


def assemble_issue(
    files: Sequence[SerializedFile],
    title: str,
    target_path: str,
    policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE,
    description: str | None = None,
) -> IssuePayload:
    body = description if description is not None else build_description(files, target_path, policy)
    return IssuePayload(title=title, description=body)


def assemble_merge_request(
    files: Sequence[SerializedFile],
    title: str,
    target_path: str,
    branch_name: str,
    target_branch: str,
    description: str | None = None,
    remove_source_branch: bool = False,
    policy: DescriptionPolicy = DescriptionPolicy.CONCATENATE,
) -> MergeRequestPayload:
    # An explicit description input wins over the workspace content
    body = description if description is not None else build_description(files, target_path, policy)
    return MergeRequestPayload(
        title=title,
        description=body,
        source_branch=branch_name,
        target_branch=target_branch,
        remove_source_branch=remove_source_branch,
    )
