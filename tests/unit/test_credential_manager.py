"""
Unit tests for Credential Manager Module
"""

import os

import pytest

from scholar_matcher.errors import ConfigurationError
from scholar_matcher.utils.credential_manager import SERPAPI_KEY, CredentialManager


@pytest.fixture
def clean_env(monkeypatch):
    """Remove the SerpAPI key and restore the environment after the test."""
    for key in [SERPAPI_KEY, "NEW_CREDENTIAL"]:
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)


@pytest.fixture
def sample_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SERPAPI_API_KEY=serp-test-key\n", encoding="utf-8")
    return env_file


class TestCredentialManagerInit:
    """Test CredentialManager initialization."""

    def test_init_with_existing_env_file(self, sample_env_file, clean_env):
        # Act
        cred_manager = CredentialManager(env_file=sample_env_file)

        # Assert
        assert cred_manager.env_file == sample_env_file
        assert os.getenv(SERPAPI_KEY) == "serp-test-key"

    def test_init_without_env_file(self, tmp_path, clean_env):
        # Arrange
        env_file = tmp_path / ".env"

        # Act
        CredentialManager(env_file=env_file)

        # Assert
        assert not env_file.exists()

    def test_environment_wins_over_env_file(self, sample_env_file, clean_env, monkeypatch):
        # Arrange
        monkeypatch.setenv(SERPAPI_KEY, "from-environment")

        # Act
        key = CredentialManager(env_file=sample_env_file).serpapi_key()

        # Assert
        assert key == "from-environment"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_env_file_permissions_restricted(self, sample_env_file, clean_env):
        # Act
        CredentialManager(env_file=sample_env_file)

        # Assert
        assert sample_env_file.stat().st_mode & 0o777 == 0o600


class TestGetCredential:
    """Test get_credential method."""

    def test_missing_credential_non_interactive_raises(self, tmp_path, clean_env):
        # Arrange
        cred_manager = CredentialManager(env_file=tmp_path / ".env")

        # Act / Assert
        with pytest.raises(ConfigurationError, match=SERPAPI_KEY):
            cred_manager.serpapi_key()

    def test_prompts_and_saves_when_interactive(self, tmp_path, clean_env, mocker):
        # Arrange
        env_file = tmp_path / ".env"
        cred_manager = CredentialManager(env_file=env_file, interactive=True)
        mock_ask = mocker.patch("rich.prompt.Prompt.ask", return_value="new-value")

        # Act
        result = cred_manager.get_credential("NEW_CREDENTIAL", "New credential")

        # Assert
        assert result == "new-value"
        mock_ask.assert_called_once_with("   Enter value", password=True)
        env_content = env_file.read_text()
        assert "NEW_CREDENTIAL" in env_content
        assert "new-value" in env_content

    def test_empty_prompt_answer_raises(self, tmp_path, clean_env, mocker):
        # Arrange
        cred_manager = CredentialManager(env_file=tmp_path / ".env", interactive=True)
        mocker.patch("rich.prompt.Prompt.ask", return_value="")

        # Act / Assert
        with pytest.raises(ConfigurationError, match="not provided"):
            cred_manager.get_credential("NEW_CREDENTIAL", "New credential")
