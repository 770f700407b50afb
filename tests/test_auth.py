"""Tests for token persistence and the OAuth helpers."""

import json
import os
import stat
import threading
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from basic_cli.auth import (
    TokenStore,
    _CallbackServer,
    build_authorize_url,
    logout,
    require_token,
)
from basic_cli.config import MESSAGES
from basic_cli.exceptions import BasicAuthenticationError, BasicNetworkError
from basic_cli.models import Token

API_URL = "https://api.test"


def make_store(tmp_path, handler=None):
    http_client = None
    if handler is not None:
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return TokenStore(
        token_path=tmp_path / "token.json", api_url=API_URL, http_client=http_client
    )


def fresh_token(**overrides):
    values = {
        "access_token": "access",
        "refresh_token": "refresh",
        "expires_at": 0,
        "token_type": "Bearer",
    }
    values.update(overrides)
    return Token(**values)


class TestTokenStore:
    def test_load_missing(self, tmp_path):
        store = make_store(tmp_path)

        assert store.load() is None
        assert store.get() is None

    def test_save_and_load(self, tmp_path):
        store = make_store(tmp_path)
        token = fresh_token(expires_at=4102444800000)

        store.save(token)

        assert store.load() == token
        saved = json.loads((tmp_path / "token.json").read_text(encoding="utf-8"))
        assert saved["expires_at"] == 4102444800000

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_saved_file_is_private(self, tmp_path):
        store = make_store(tmp_path)
        store.save(fresh_token())

        mode = stat.S_IMODE((tmp_path / "token.json").stat().st_mode)
        assert mode == 0o600

    def test_unreadable_token(self, tmp_path):
        (tmp_path / "token.json").write_text("not json", encoding="utf-8")

        with pytest.raises(BasicAuthenticationError, match="unreadable"):
            make_store(tmp_path).load()

    def test_delete(self, tmp_path):
        store = make_store(tmp_path)
        store.save(fresh_token())

        assert store.delete() is True
        assert store.delete() is False
        assert logout(store) is False

    def test_close_releases_own_client(self, tmp_path):
        store = TokenStore(token_path=tmp_path / "token.json", api_url=API_URL)
        http_client = store._client()

        store.close()

        assert http_client.is_closed
        store.close()

    def test_close_leaves_injected_client_open(self, tmp_path):
        http_client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        store = TokenStore(
            token_path=tmp_path / "token.json", api_url=API_URL, http_client=http_client
        )

        store.close()

        assert not http_client.is_closed
        http_client.close()

    def test_valid_token_is_not_refreshed(self, tmp_path):
        def handler(request):
            raise AssertionError("no request expected")

        store = make_store(tmp_path, handler)
        store.save(fresh_token(expires_at=4102444800000))

        assert store.get().access_token == "access"

    def test_expired_token_is_refreshed_and_saved(self, tmp_path):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200, json={"access_token": "new-access", "expires_in": 3600}
            )

        store = make_store(tmp_path, handler)
        store.save(fresh_token(expires_at=1000))

        token = store.get()

        assert token.access_token == "new-access"
        assert token.refresh_token == "refresh"
        assert not token.is_expired()
        assert store.load().access_token == "new-access"

        form = parse_qs(requests[0].content.decode())
        assert requests[0].url.path == "/auth/token"
        assert form["grant_type"] == ["refresh_token"]
        assert form["code"] == ["refresh"]

    def test_refresh_failure(self, tmp_path):
        store = make_store(tmp_path, lambda request: httpx.Response(400, text="invalid"))
        store.save(fresh_token(expires_at=1000))

        with pytest.raises(BasicAuthenticationError, match="Failed to refresh token"):
            store.get()

    def test_refresh_network_failure(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        store = make_store(tmp_path, handler)
        store.save(fresh_token(expires_at=1000))

        with pytest.raises(BasicNetworkError):
            store.get()

    def test_exchange_code(self, tmp_path):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={"access_token": "a", "refresh_token": "r", "expires_in": 60},
            )

        token = make_store(tmp_path, handler).exchange_code("the-code")

        assert token.access_token == "a"
        form = parse_qs(requests[0].content.decode())
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["the-code"]
        assert form["redirect_uri"] == ["http://localhost:8080/callback"]

    def test_get_user_info(self, tmp_path):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"email": "me@example.com", "id": "u1"})

        store = make_store(tmp_path, handler)
        store.save(fresh_token())

        user = store.get_user_info()

        assert user.email == "me@example.com"
        assert requests[0].url.path == "/auth/userInfo"
        assert requests[0].headers["Authorization"] == "Bearer access"


class TestRequireToken:
    def test_logged_out(self, tmp_path):
        with pytest.raises(BasicAuthenticationError) as exc_info:
            require_token(make_store(tmp_path))

        assert exc_info.value.message == MESSAGES["logged_out"]

    def test_logged_in(self, tmp_path):
        store = make_store(tmp_path)
        store.save(fresh_token())

        assert require_token(store).access_token == "access"


class TestAuthorizeUrl:
    def test_parameters(self):
        url = urlparse(build_authorize_url("xyz", API_URL))
        params = parse_qs(url.query)

        assert url.path == "/auth/authorize"
        assert params["state"] == ["xyz"]
        assert params["response_type"] == ["code"]
        assert params["redirect_uri"] == ["http://localhost:8080/callback"]
        assert params["scope"] == ["profile,admin"]


class TestCallbackServer:
    """Exercises the redirect handler on an ephemeral local port."""

    def _serve(self, exchange):
        server = _CallbackServer(("127.0.0.1", 0), exchange)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        return server

    def _stop(self, server):
        server.shutdown()
        server.server_close()

    def test_successful_redirect(self):
        token = fresh_token()
        server = self._serve(lambda code: token if code == "abc" else None)
        try:
            port = server.server_address[1]
            response = httpx.get(
                f"http://127.0.0.1:{port}/callback",
                params={"code": "abc", "state": server.expected_state},
                trust_env=False,
            )
            assert server.done.wait(5)
        finally:
            self._stop(server)

        assert response.status_code == 200
        assert "Authentication Successful" in response.text
        assert server.token == token
        assert server.error is None

    def test_state_mismatch(self):
        server = self._serve(lambda code: fresh_token())
        try:
            port = server.server_address[1]
            response = httpx.get(
                f"http://127.0.0.1:{port}/callback",
                params={"code": "abc", "state": "forged"},
                trust_env=False,
            )
            assert server.done.wait(5)
        finally:
            self._stop(server)

        assert response.status_code == 400
        assert server.token is None
        assert isinstance(server.error, BasicAuthenticationError)
