"""
Tests for settings and path resolution.
"""

from pathlib import Path


class TestResolveMemoryPath:
    """Tests for resolve_memory_path."""

    def test_unset_uses_default_file_in_base_dir(self, tmp_path: Path):
        from devhub_mcp.config import resolve_memory_path
        assert resolve_memory_path(None, tmp_path) == (tmp_path / "memory.json").resolve()
        assert resolve_memory_path("   ", tmp_path) == (tmp_path / "memory.json").resolve()

    def test_relative_resolves_against_base_dir(self, tmp_path: Path):
        from devhub_mcp.config import resolve_memory_path
        assert resolve_memory_path("data/graph.json", tmp_path) == (tmp_path / "data" / "graph.json").resolve()

    def test_absolute_is_used_as_is(self, tmp_path: Path):
        from devhub_mcp.config import resolve_memory_path
        target = tmp_path / "elsewhere" / "graph.json"
        assert resolve_memory_path(str(target), Path("/unused")) == target.resolve()

    def test_default_base_is_package_dir(self):
        from devhub_mcp.config import PACKAGE_DIR, resolve_memory_path
        assert resolve_memory_path(None) == PACKAGE_DIR / "memory.json"


class TestSettings:
    """Tests for environment-driven settings."""

    def test_gitlab_defaults(self, monkeypatch):
        from devhub_mcp.config import GitLabSettings
        monkeypatch.delenv("GITLAB_API_URL", raising=False)
        monkeypatch.delenv("GITLAB_TOKEN", raising=False)
        settings = GitLabSettings()
        assert settings.api_url == "https://gitlab.com/api/v4"
        assert settings.token is None

    def test_confluence_atlassian_fallbacks(self, monkeypatch):
        from devhub_mcp.config import ConfluenceSettings
        monkeypatch.delenv("CONFLUENCE_USERNAME", raising=False)
        monkeypatch.delenv("CONFLUENCE_API_TOKEN", raising=False)
        monkeypatch.setenv("CONFLUENCE_BASE_URL", "https://wiki.example.com/")
        monkeypatch.setenv("ATLASSIAN_EMAIL", "me@example.com")
        monkeypatch.setenv("ATLASSIAN_API_TOKEN", "secret")
        settings = ConfluenceSettings()
        assert settings.site_url == "https://wiki.example.com"
        assert settings.username == "me@example.com"
        assert settings.api_token == "secret"

    def test_oracle_defaults(self, monkeypatch):
        from devhub_mcp.config import OracleSettings
        monkeypatch.delenv("ORACLE_PORT", raising=False)
        monkeypatch.delenv("ORACLE_SID", raising=False)
        settings = OracleSettings()
        assert settings.port == 1521
        assert settings.sid == "DEVGABIA"

    def test_figma_tls_is_verified_by_default(self, monkeypatch):
        from devhub_mcp.config import FigmaSettings
        monkeypatch.delenv("FIGMA_SSL_INSECURE", raising=False)
        assert FigmaSettings().ssl_insecure is False
