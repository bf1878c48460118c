"""Pick the integration and token for a GitLab host."""

from pydantic import SecretStr

from glpub.errors import ConfigurationError
from glpub.models import Credential, IntegrationConfig
from glpub.settings import IntegrationRegistry


def resolve_credential(
    integrations: IntegrationRegistry,
    host: str,
    explicit_token: str | None = None,
) -> tuple[IntegrationConfig, Credential]:
    """Return the integration for host and the credential to use against it.

    Precedence:
    1. explicit_token (the action's token input) — sent as an OAuth bearer token
    2. token from the integration config — sent as a private token
    """
    config = integrations.gitlab.by_host(host)
    if config is None:
        raise ConfigurationError(
            f"No matching integration configuration for host {host}, please check your integrations config"
        )

    if explicit_token:
        return config, Credential(kind="oauthToken", value=SecretStr(explicit_token))
    if config.token is not None and config.token.get_secret_value():
        return config, Credential(kind="token", value=config.token)
    raise ConfigurationError(f"No token available for host {host}")
