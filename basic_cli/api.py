"""API client for the Basic backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from .config import PACKAGE_NAME, config
from .exceptions import (
    BasicAPIError,
    BasicAuthenticationError,
    BasicInvalidResponseError,
    BasicNetworkError,
    BasicNotFoundError,
    BasicPermissionError,
    BasicSchemaError,
)
from .models import Project, Schema, Team, ValidationResult

if TYPE_CHECKING:
    from .auth import TokenStore

logger = logging.getLogger(__name__)


class BasicClient:
    """Client for the Basic REST API.

    Requests carry ``Authorization: Bearer <token>`` whenever the token store
    has a token. Without one the request is still sent and the server
    decides. Failed requests are never retried.
    """

    def __init__(
        self,
        token_store: Optional[TokenStore] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the API client.

        Args:
            token_store: Source of the bearer token (a default TokenStore if
                not provided)
            api_url: Optional API URL (uses config if not provided)
            timeout: Request timeout in seconds (uses config if not provided)
            transport: Optional httpx transport, mainly for tests
        """
        if token_store is None:
            from .auth import TokenStore

            token_store = TokenStore()
        self.token_store = token_store
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> BasicClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        token = self.token_store.get()
        if token is None:
            return {}
        return {"Authorization": f"Bearer {token.access_token}"}

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Translate a non-2xx response into a BasicAPIError subclass.

        The message carries the status code and the raw body text.
        """
        status_code = response.status_code
        if status_code < 400:
            return

        message = f"API Error: {status_code} - {response.text}"
        if status_code == 401:
            raise BasicAuthenticationError(
                message,
                [
                    "Try logging in again with 'basic login'",
                    "Check if your token has expired",
                ],
            )
        if status_code == 403:
            raise BasicPermissionError(message, status_code)
        if status_code == 404:
            raise BasicNotFoundError(message, status_code)
        raise BasicAPIError(message, status_code)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for an empty body)

        Raises:
            BasicAPIError: If the server answers with a non-2xx status
            BasicNetworkError: If the server cannot be reached
            BasicInvalidResponseError: If the body is not valid JSON
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}

        try:
            response = self._get_client().request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise BasicNetworkError(f"Network error: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        self._raise_for_status(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BasicInvalidResponseError(
                f"Invalid JSON response from {endpoint}", response.status_code
            ) from e

    # =========================
    # Connectivity
    # =========================

    def is_online(self) -> bool:
        """Check whether the backend is reachable.

        Any HTTP answer counts as online; only transport failures do not.
        """
        try:
            self._get_client().head(self.api_url)
        except httpx.RequestError as e:
            logger.debug(f"Connectivity check failed: {e}")
            return False
        return True

    # =========================
    # Projects
    # =========================

    def get_projects(self) -> list[Project]:
        """List the projects of the logged-in user."""
        response = self._request("GET", "/project")
        return [Project.from_api_response(p) for p in response.get("data") or []]

    def get_project(self, project_id: str) -> Project:
        """Get details of a single project."""
        response = self._request("GET", f"/project/{project_id}")
        return Project.from_api_response(response.get("data") or {})

    def create_project(self, name: str, slug: str, team_id: str) -> Project:
        """Create a project inside a team."""
        response = self._request(
            "POST",
            "/project",
            json={"name": name, "slug": slug, "team_id": team_id},
        )
        return Project.from_api_response(response.get("data") or {})

    # =========================
    # Teams
    # =========================

    def get_teams(self) -> list[Team]:
        """List the teams of the logged-in user."""
        response = self._request("GET", "/team")
        return [Team.from_api_response(t) for t in response.get("data") or []]

    def create_team(self, name: str, slug: str) -> Team:
        """Create a new team."""
        response = self._request("POST", "/team", json={"name": name, "slug": slug})
        return Team.from_api_response(response.get("data") or {})

    def check_team_slug_availability(self, slug: str) -> bool:
        """Check if a team slug is free.

        Returns:
            True if available. A failed check reports the slug as taken.
        """
        try:
            response = self._request("GET", "/team/slug", params={"slug": slug})
        except BasicAPIError as e:
            logger.debug(f"Slug availability check failed: {e}")
            return False
        return bool(response.get("available"))

    # =========================
    # Schema
    # =========================

    def get_project_schema(self, project_id: str) -> Optional[Schema]:
        """Fetch the published schema of a project.

        Returns:
            The latest remote schema, or None when the project has none yet

        Raises:
            BasicInvalidResponseError: If the body or the schema it carries
                does not have the expected shape
        """
        endpoint = f"/project/{project_id}/schema"
        try:
            response = self._request("GET", endpoint)
        except BasicNotFoundError:
            return None

        if not isinstance(response, dict):
            raise BasicInvalidResponseError(f"Unexpected response from {endpoint}")
        data = response.get("data")
        if not data:
            return None
        if not isinstance(data, list):
            raise BasicInvalidResponseError(f"Unexpected response from {endpoint}")
        entry = data[0]
        if not isinstance(entry, dict) or "schema" not in entry:
            raise BasicInvalidResponseError(
                f"Unexpected response from {endpoint}: missing schema"
            )
        try:
            return Schema.from_dict(entry["schema"])
        except BasicSchemaError as e:
            raise BasicInvalidResponseError(
                f"Remote schema is invalid: {e.message}"
            ) from e

    def push_project_schema(self, project_id: str, schema: Schema) -> Any:
        """Publish a complete schema for a project."""
        return self._request(
            "POST", f"/project/{project_id}/schema", json={"schema": schema.to_dict()}
        )

    def validate_schema(self, schema: Schema) -> ValidationResult:
        """Ask the backend whether a schema is a valid update."""
        response = self._request(
            "POST", "/utils/schema/verifyUpdateSchema", json={"schema": schema.to_dict()}
        )
        return ValidationResult.from_api_response(response)

    def compare_schema(self, schema: Schema) -> bool:
        """Ask the backend whether a schema matches the published one.

        Returns:
            True if the content equals the remote schema at the same version
        """
        response = self._request(
            "POST", "/utils/schema/compareSchema", json={"schema": schema.to_dict()}
        )
        return bool(response.get("valid"))

    # =========================
    # Releases
    # =========================

    def check_latest_release(self) -> str:
        """Get the latest published version of the CLI from PyPI."""
        url = f"https://pypi.org/pypi/{PACKAGE_NAME}/json"
        try:
            response = self._get_client().get(url)
        except httpx.RequestError as e:
            raise BasicNetworkError(f"Network error: {e}") from e
        if response.status_code >= 400:
            raise BasicAPIError("Failed to check for updates", response.status_code)
        return str(response.json()["info"]["version"])
