"""
Configuration module for DevHub MCP Server.

Uses pydantic-settings for configuration management with environment variable support.
Each external service reads its own prefix (e.g., GITLAB_TOKEN, CONFLUENCE_BASE_URL).
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_MEMORY_FILE = "memory.json"


class GitLabSettings(BaseSettings):
    """GitLab API settings.

    Environment variables:
    - GITLAB_API_URL: Base URL of the REST API, including /api/v4
    - GITLAB_TOKEN: Personal or project access token
    """

    api_url: str = "https://gitlab.com/api/v4"
    token: str | None = None

    model_config = SettingsConfigDict(env_prefix="GITLAB_")


class ConfluenceSettings(BaseSettings):
    """Confluence API settings.

    Environment variables:
    - CONFLUENCE_BASE_URL: Site URL (e.g., https://wiki.example.com)
    - CONFLUENCE_USERNAME or ATLASSIAN_EMAIL: Basic auth user
    - CONFLUENCE_API_TOKEN or ATLASSIAN_API_TOKEN: Basic auth token
    - ATLASSIAN_OAUTH_ACCESS_TOKEN: Bearer token, preferred over basic auth
    - CONFLUENCE_SPACES_FILTER: Comma-separated space keys applied to searches
    """

    base_url: str = ""
    username: str | None = Field(
        default=None, validation_alias=AliasChoices("CONFLUENCE_USERNAME", "ATLASSIAN_EMAIL")
    )
    api_token: str | None = Field(
        default=None, validation_alias=AliasChoices("CONFLUENCE_API_TOKEN", "ATLASSIAN_API_TOKEN")
    )
    oauth_access_token: str | None = Field(
        default=None, validation_alias=AliasChoices("ATLASSIAN_OAUTH_ACCESS_TOKEN")
    )
    spaces_filter: str | None = None

    model_config = SettingsConfigDict(env_prefix="CONFLUENCE_", populate_by_name=True)

    @property
    def site_url(self) -> str:
        return self.base_url.rstrip("/")


class FigmaSettings(BaseSettings):
    """Figma API settings.

    Environment variables:
    - FIGMA_API_KEY: Personal access token sent as X-Figma-Token
    - FIGMA_OAUTH_TOKEN: OAuth token, preferred over the API key
    - FIGMA_CA_CERT_PEM: Path to a CA bundle for TLS verification
    - FIGMA_SSL_INSECURE: Disable TLS verification when no CA bundle is set
    """

    api_url: str = "https://api.figma.com/v1"
    api_key: str | None = None
    oauth_token: str | None = None
    ca_cert_pem: Path | None = None
    ssl_insecure: bool = False

    model_config = SettingsConfigDict(env_prefix="FIGMA_")


class MattermostSettings(BaseSettings):
    """Mattermost API settings.

    Environment variables:
    - MATTERMOST_API_URL: Base URL of the REST API, including /api/v4
    - MATTERMOST_TOKEN: Personal access token
    """

    api_url: str = "http://localhost:8065/api/v4"
    token: str | None = None

    model_config = SettingsConfigDict(env_prefix="MATTERMOST_")


class OracleSettings(BaseSettings):
    """Oracle connection settings.

    Environment variables:
    - ORACLE_HOST, ORACLE_USERNAME, ORACLE_PASSWORD: required to connect
    - ORACLE_PORT: Listener port (default: 1521)
    - ORACLE_SID: Database SID (default: DEVGABIA)
    """

    host: str | None = None
    port: int = 1521
    sid: str = "DEVGABIA"
    username: str | None = None
    password: str | None = None

    model_config = SettingsConfigDict(env_prefix="ORACLE_")


class MemorySettings(BaseSettings):
    """Knowledge graph storage settings.

    Environment variables:
    - MEMORY_FILE_PATH: Backing file. Relative paths resolve against the package directory.
    """

    file_path: str | None = None

    model_config = SettingsConfigDict(env_prefix="MEMORY_")


class HttpSettings(BaseSettings):
    """Shared HTTP client settings (HTTP_ prefix)."""

    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    retry_attempts: int = 3

    model_config = SettingsConfigDict(env_prefix="HTTP_")


def resolve_memory_path(file_path: str | None, base_dir: Path = PACKAGE_DIR) -> Path:
    """Resolve the knowledge graph file location."""
    if not file_path or not file_path.strip():
        return (base_dir / DEFAULT_MEMORY_FILE).resolve()
    provided = Path(file_path).expanduser()
    if provided.is_absolute():
        return provided.resolve()
    return (base_dir / provided).resolve()


# Global settings instances
gitlab_settings = GitLabSettings()
confluence_settings = ConfluenceSettings()
figma_settings = FigmaSettings()
mattermost_settings = MattermostSettings()
oracle_settings = OracleSettings()
memory_settings = MemorySettings()
http_settings = HttpSettings()
