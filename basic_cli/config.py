"""Configuration management for the Basic CLI."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "https://api.basic.tech"
DEFAULT_TIMEOUT = 30.0

CLI_DIR_NAME = ".basic-cli"
TOKEN_FILE_NAME = "token.json"

OAUTH_CLIENT_ID = "9c3f6704-87e7-4af9-8dd0-36dcb9b5c18c"
OAUTH_REDIRECT = "http://localhost:8080/callback"
OAUTH_SCOPES = "profile,admin"

PACKAGE_NAME = "basic-cli"

MESSAGES = {
    "offline": "you are offline. please check your internet connection.",
    "logged_out": "you are not logged in. please login with 'basic login'",
    "welcome": "welcome to basic-cli! use 'basic help' to see all commands",
}


class Config:
    """Runtime configuration resolved from environment variables.

    Values are read lazily so tests can patch the environment after import.

    Environment variables:
        BASIC_API_URL: Backend base URL (default: https://api.basic.tech)
        BASIC_CLI_DIR: Directory holding the token file (default: ~/.basic-cli)
        BASIC_TIMEOUT: HTTP timeout in seconds (default: 30)
    """

    @property
    def api_url(self) -> str:
        return os.environ.get("BASIC_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def timeout(self) -> float:
        value = os.environ.get("BASIC_TIMEOUT")
        if not value:
            return DEFAULT_TIMEOUT
        try:
            return float(value)
        except ValueError:
            return DEFAULT_TIMEOUT

    @property
    def oauth_client_id(self) -> str:
        return OAUTH_CLIENT_ID

    @property
    def oauth_redirect(self) -> str:
        return OAUTH_REDIRECT

    @property
    def oauth_scopes(self) -> str:
        return OAUTH_SCOPES

    def get_config_dir(self) -> Path:
        """Get the directory where the CLI keeps its state."""
        override: Optional[str] = os.environ.get("BASIC_CLI_DIR")
        if override:
            return Path(override)
        return Path.home() / CLI_DIR_NAME

    def get_token_path(self) -> Path:
        """Get the path of the persisted OAuth token."""
        return self.get_config_dir() / TOKEN_FILE_NAME

    def is_logged_in(self) -> bool:
        """Check whether a token file exists (it may still be expired)."""
        return self.get_token_path().exists()


config = Config()
