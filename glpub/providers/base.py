"""Abstract base class for remote project clients."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from types import TracebackType
from typing import Self

from glpub.models import CreatedResource, IssuePayload, MergeRequestPayload, Project, SerializedFile


class ProjectClient(ABC):
    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release transport resources; nothing to do by default."""

    @abstractmethod
    async def get_project(self, project_path: str) -> Project: ...

    @abstractmethod
    async def create_issue(self, project_id: int, payload: IssuePayload) -> CreatedResource: ...

    @abstractmethod
    async def create_merge_request(self, project_id: int, payload: MergeRequestPayload) -> CreatedResource: ...

    @abstractmethod
    async def commit_files(
        self,
        project_id: int,
        branch: str,
        start_branch: str,
        message: str,
        files: Sequence[SerializedFile],
    ) -> None: ...
