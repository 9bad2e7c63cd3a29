"""
Credential Manager Module
Resolves API credentials from the environment or a .env file, optionally
prompting on the command line.
"""

import os
from pathlib import Path

import structlog
from dotenv import load_dotenv, set_key
from rich.console import Console
from rich.prompt import Prompt

from scholar_matcher.errors import ConfigurationError

console = Console()
logger = structlog.get_logger(__name__)

SERPAPI_KEY = "SERPAPI_API_KEY"


class CredentialManager:
    """Manages API credentials with .env storage and optional CLI prompting."""

    def __init__(self, env_file: Path = Path(".env"), interactive: bool = False):
        """
        Initialize credential manager.

        Args:
            env_file: Path to .env file for credential storage
            interactive: Prompt for missing credentials instead of failing
        """
        self.env_file = env_file
        self.interactive = interactive
        self._load_credentials()

    def _load_credentials(self) -> None:
        """Load existing credentials from .env file without overriding the environment."""
        if self.env_file.exists():
            load_dotenv(self.env_file, override=False)
            logger.debug("credentials_loaded_from_env", env_file=str(self.env_file))
            self._set_secure_permissions()

    def _set_secure_permissions(self) -> None:
        """Set secure file permissions on .env file (Unix only)."""
        if os.name == "nt":
            return
        try:
            os.chmod(self.env_file, 0o600)
        except OSError as e:
            logger.warning(
                "failed_to_set_permissions", env_file=str(self.env_file), error=str(e)
            )

    def get_credential(self, key: str, prompt_message: str) -> str:
        """
        Get a required credential from the environment, prompting if allowed.

        Args:
            key: Environment variable name (e.g., "SERPAPI_API_KEY")
            prompt_message: Message to display when prompting

        Returns:
            Credential value

        Raises:
            ConfigurationError: If the credential is missing and cannot be obtained
        """
        value = os.getenv(key)
        if value:
            return value

        if not self.interactive:
            logger.error("required_credential_missing", key=key)
            raise ConfigurationError(
                f"Required credential not configured: {key}. "
                f"Set it in the environment or in {self.env_file}."
            )

        console.print(f"\n[yellow][*] Credential Required: {key}[/yellow]")
        console.print(f"   {prompt_message}\n")
        value = Prompt.ask("   Enter value", password=True)

        if not value:
            logger.error("required_credential_not_provided", key=key)
            raise ConfigurationError(f"Required credential not provided: {key}")

        self._save_credential(key, value)
        return value

    def _save_credential(self, key: str, value: str) -> None:
        """Save credential to .env file and the current environment."""
        self.env_file.touch(exist_ok=True)
        set_key(str(self.env_file), key, value)
        os.environ[key] = value
        self._set_secure_permissions()
        console.print(f"   [green][+] Saved {key} to {self.env_file}[/green]\n")
        logger.info("credential_saved", key=key, env_file=str(self.env_file))

    def serpapi_key(self) -> str:
        """SerpAPI key used for Google Scholar author lookups."""
        return self.get_credential(SERPAPI_KEY, "SerpAPI key (https://serpapi.com/manage-api-key)")

