"""Error taxonomy for the publish actions.

InputError and its subclasses are user-actionable: the host renders their
message as-is. Anything else is a backend failure of the step.
"""


class InputError(Exception):
    """The action was invoked with input it cannot act on."""


class ConfigurationError(InputError):
    """No integration, or no usable token, for the requested host."""


class ContainmentError(InputError):
    """A caller-supplied path resolves outside the workspace."""


class RemoteCreateError(InputError):
    """GitLab rejected the issue or merge request creation."""

    def __init__(self, message: str, project_path: str) -> None:
        super().__init__(message)
        self.project_path = project_path


class GitLabAuthError(RuntimeError):
    """GitLab answered 401 for the configured credential."""
