"""OAuth authentication and token persistence for the Basic CLI."""

from __future__ import annotations

import json
import logging
import os
import secrets
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from .config import MESSAGES, config
from .exceptions import BasicAuthenticationError, BasicNetworkError
from .models import Token, UserInfo
from .utils import open_browser

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT = 5 * 60  # seconds

SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"><title>Basic CLI Authentication</title></head>
<body style="font-family: monospace; text-align: center; margin-top: 20vh;">
  <h2>Authentication Successful!</h2>
  <p>You can close this window and return to the CLI.</p>
  <p>Use <code>basic help</code> to get started, or visit
  <a href="https://docs.basic.tech">the Basic docs</a>.</p>
  <script>setTimeout(() => window.close(), 3000);</script>
</body>
</html>
"""


class TokenStore:
    """Load, save, refresh and delete the persisted OAuth token."""

    def __init__(
        self,
        token_path: Optional[Path] = None,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """Initialize the token store.

        Args:
            token_path: Token file location (uses config if not provided)
            api_url: Backend base URL used for refresh (uses config if not provided)
            http_client: Optional httpx client, mainly for tests
        """
        self.token_path = token_path or config.get_token_path()
        self.api_url = (api_url or config.api_url).rstrip("/")
        self._http = http_client
        self._owns_http = http_client is None

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=httpx.Timeout(config.timeout))
        return self._http

    def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_http and self._http is not None:
            self._http.close()
            self._http = None

    def load(self) -> Optional[Token]:
        """Read the token file without refreshing.

        Returns:
            The stored token, or None if no token file exists
        """
        if not self.token_path.exists():
            return None
        try:
            data = json.loads(self.token_path.read_text(encoding="utf-8"))
            return Token.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise BasicAuthenticationError(
                f"Stored token is unreadable: {e}",
                ["Try logging in again with 'basic login'"],
            ) from e

    def get(self) -> Optional[Token]:
        """Get a usable token, refreshing and persisting it if it expired.

        Returns:
            A valid token, or None when the user is not logged in

        Raises:
            BasicAuthenticationError: If the token is expired and cannot be
                refreshed
        """
        token = self.load()
        if token is None:
            return None
        if token.is_expired():
            logger.debug("Stored token expired, refreshing")
            token = self.refresh(token)
            self.save(token)
        return token

    def save(self, token: Token) -> None:
        """Persist a token with owner-only permissions."""
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(token.to_dict(), f, indent=2)
        logger.debug(f"Saved token to {self.token_path}")

    def delete(self) -> bool:
        """Remove the token file.

        Returns:
            True if a token was removed, False if none existed
        """
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted token at {self.token_path}")
        return True

    def refresh(self, token: Token) -> Token:
        """Exchange the refresh token for a new access token."""
        data = self._post_token_endpoint(
            {
                "grant_type": "refresh_token",
                "client_id": config.oauth_client_id,
                "code": token.refresh_token,
            },
            failure="Failed to refresh token",
        )
        return Token.from_token_response(data, previous=token)

    def exchange_code(self, code: str) -> Token:
        """Exchange an authorization code for a token."""
        data = self._post_token_endpoint(
            {
                "grant_type": "authorization_code",
                "client_id": config.oauth_client_id,
                "code": code,
                "redirect_uri": config.oauth_redirect,
            },
            failure="Failed to exchange code for token",
        )
        return Token.from_token_response(data)

    def _post_token_endpoint(self, form: dict[str, str], failure: str) -> Any:
        try:
            response = self._client().post(f"{self.api_url}/auth/token", data=form)
        except httpx.RequestError as e:
            raise BasicNetworkError(f"Network error: {e}") from e
        if response.status_code >= 400:
            raise BasicAuthenticationError(
                failure, ["Try logging in again with 'basic login'"]
            )
        return response.json()

    def get_user_info(self) -> UserInfo:
        """Fetch the profile of the logged-in user."""
        token = self.get()
        if token is None:
            raise BasicAuthenticationError("Not logged in")
        try:
            response = self._client().get(
                f"{self.api_url}/auth/userInfo",
                headers={"Authorization": f"Bearer {token.access_token}"},
            )
        except httpx.RequestError as e:
            raise BasicNetworkError(f"Network error: {e}") from e
        if response.status_code >= 400:
            raise BasicAuthenticationError("Failed to fetch user info")
        return UserInfo.from_api_response(response.json())


def require_token(store: Optional[TokenStore] = None) -> Token:
    """Return the current token or raise the standard logged-out error."""
    token = (store or TokenStore()).get()
    if token is None:
        raise BasicAuthenticationError(MESSAGES["logged_out"])
    return token


def build_authorize_url(state: str, api_url: Optional[str] = None) -> str:
    """Build the URL of the OAuth authorization page."""
    params = {
        "client_id": config.oauth_client_id,
        "redirect_uri": config.oauth_redirect,
        "response_type": "code",
        "scope": config.oauth_scopes,
        "state": state,
    }
    return f"{(api_url or config.api_url).rstrip('/')}/auth/authorize?{urlencode(params)}"


class _CallbackHandler(BaseHTTPRequestHandler):
    """Receives the OAuth redirect on the local callback server."""

    server: _CallbackServer

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        if parsed.path != "/callback":
            self.send_response(404)
            self.end_headers()
            self.wfile.write(b"Not found")
            return

        query = parse_qs(parsed.query)
        code = (query.get("code") or [None])[0]
        state = (query.get("state") or [None])[0]

        if not code:
            self.server.error = BasicAuthenticationError("Authorization code not found")
            self._finish(400, b"Authorization code not found")
            return
        if state != self.server.expected_state:
            self.server.error = BasicAuthenticationError("OAuth state mismatch")
            self._finish(400, b"Invalid state")
            return

        try:
            self.server.token = self.server.exchange(code)
        except Exception as e:
            self.server.error = e
            self._finish(500, b"Authentication failed")
            return
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(SUCCESS_HTML.encode("utf-8"))
        self.server.done.set()

    def _finish(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.end_headers()
        self.wfile.write(body)
        self.server.done.set()

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


class _CallbackServer(HTTPServer):
    def __init__(self, address: tuple[str, int], exchange: Callable[[str], Token]):
        super().__init__(address, _CallbackHandler)
        self.exchange = exchange
        self.expected_state = secrets.token_hex(24)
        self.token: Optional[Token] = None
        self.error: Optional[BaseException] = None
        self.done = threading.Event()


def login(
    store: Optional[TokenStore] = None,
    echo: Callable[[str], None] = print,
    timeout: float = LOGIN_TIMEOUT,
) -> Token:
    """Run the OAuth authorization-code flow and persist the token.

    Starts a callback server on the redirect port, opens the browser on the
    authorization page and waits for the redirect.

    Args:
        store: Token store to save into
        echo: Function used to print the fallback URL
        timeout: Seconds to wait for the browser round-trip

    Returns:
        The new token

    Raises:
        BasicAuthenticationError: On timeout or a failed exchange
    """
    store = store or TokenStore()
    redirect = urlparse(config.oauth_redirect)
    server = _CallbackServer(
        (redirect.hostname or "localhost", redirect.port or 8080), store.exchange_code
    )
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        url = build_authorize_url(server.expected_state, store.api_url)
        if not open_browser(url):
            echo(f"Please visit this URL to log in: {url}")
        if not server.done.wait(timeout):
            raise BasicAuthenticationError("Authentication timeout")
    finally:
        server.shutdown()
        server.server_close()

    if server.error is not None:
        if isinstance(server.error, BasicAuthenticationError):
            raise server.error
        raise BasicAuthenticationError(str(server.error)) from server.error
    if server.token is None:
        raise BasicAuthenticationError("Authentication failed")

    store.save(server.token)
    return server.token


def logout(store: Optional[TokenStore] = None) -> bool:
    """Delete the stored token."""
    return (store or TokenStore()).delete()
