"""Unit tests for the Basic API client."""

import json
from unittest.mock import Mock

import httpx
import pytest
from conftest import schema_dict

from basic_cli.api import BasicClient
from basic_cli.auth import TokenStore
from basic_cli.exceptions import (
    BasicAPIError,
    BasicAuthenticationError,
    BasicInvalidResponseError,
    BasicNetworkError,
    BasicNotFoundError,
    BasicPermissionError,
)
from basic_cli.models import Schema, Token

API_URL = "https://api.test"


def make_client(handler, token="access-123"):
    """Build a client whose requests are answered by ``handler``."""
    store = Mock(spec=TokenStore)
    store.get.return_value = (
        Token(access_token=token, refresh_token="r", expires_at=0) if token else None
    )
    return BasicClient(
        token_store=store, api_url=API_URL, transport=httpx.MockTransport(handler)
    )


class Recorder:
    """Request handler returning a fixed response and keeping the requests."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        if self.body is None:
            return httpx.Response(self.status_code)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


class TestBasicClient:
    def test_api_url_trailing_slash(self):
        client = BasicClient(token_store=Mock(spec=TokenStore), api_url=f"{API_URL}/")
        assert client.api_url == API_URL

    def test_bearer_header_when_logged_in(self):
        recorder = Recorder(body={"data": []})
        make_client(recorder).get_projects()

        assert recorder.last.headers["Authorization"] == "Bearer access-123"

    def test_request_sent_without_token(self):
        recorder = Recorder(body={"data": []})
        make_client(recorder, token=None).get_projects()

        assert "Authorization" not in recorder.last.headers

    def test_context_manager_closes(self):
        recorder = Recorder(body={"data": []})
        with make_client(recorder) as client:
            client.get_projects()
            assert client._client is not None
        assert client._client is None


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status_code,error_class",
        [
            (401, BasicAuthenticationError),
            (403, BasicPermissionError),
            (404, BasicNotFoundError),
            (500, BasicAPIError),
        ],
    )
    def test_status_codes(self, status_code, error_class):
        client = make_client(Recorder(status_code, text="nope"))

        with pytest.raises(error_class) as exc_info:
            client.get_projects()

        assert exc_info.value.message == f"API Error: {status_code} - nope"

    def test_status_code_is_kept(self):
        client = make_client(Recorder(502, text="bad gateway"))

        with pytest.raises(BasicAPIError) as exc_info:
            client.push_project_schema("p", Schema.empty("p"))

        assert exc_info.value.status_code == 502

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BasicNetworkError):
            make_client(handler).get_teams()

    def test_invalid_json(self):
        client = make_client(Recorder(200, text="<html>"))

        with pytest.raises(BasicInvalidResponseError):
            client.get_projects()

    def test_empty_body(self):
        recorder = Recorder(200)
        assert make_client(recorder).push_project_schema("p", Schema.empty("p")) == {}


class TestConnectivity:
    def test_online(self):
        assert make_client(Recorder(404)).is_online()

    def test_offline(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        assert not make_client(handler).is_online()


class TestProjectsAndTeams:
    def test_get_projects(self):
        recorder = Recorder(
            body={
                "data": [
                    {"id": "p1", "name": "One", "team_name": "Team A"},
                    {"id": "p2", "name": "Two", "team_name": "Team B"},
                ]
            }
        )

        projects = make_client(recorder).get_projects()

        assert [p.id for p in projects] == ["p1", "p2"]
        assert projects[0].team_name == "Team A"
        assert recorder.last.url.path == "/project"

    def test_create_project(self):
        recorder = Recorder(body={"data": {"id": "p9", "name": "New", "slug": "new"}})

        project = make_client(recorder).create_project("New", "new", "t1")

        assert project.id == "p9"
        assert recorder.last.method == "POST"
        assert json.loads(recorder.last.content) == {
            "name": "New",
            "slug": "new",
            "team_id": "t1",
        }

    def test_get_teams_default_role(self):
        recorder = Recorder(body={"data": [{"id": "t1", "name": "Team", "slug": "team"}]})

        teams = make_client(recorder).get_teams()

        assert teams[0].display_role == "Member"

    def test_slug_available(self):
        recorder = Recorder(body={"available": True})

        assert make_client(recorder).check_team_slug_availability("my-team")
        assert recorder.last.url.path == "/team/slug"
        assert recorder.last.url.params["slug"] == "my-team"

    def test_slug_check_failure_reports_taken(self):
        assert not make_client(Recorder(500, text="err")).check_team_slug_availability("x")


class TestSchemaEndpoints:
    def test_get_project_schema(self):
        recorder = Recorder(body={"data": [{"schema": schema_dict(version=4)}]})

        schema = make_client(recorder).get_project_schema("proj-1")

        assert schema.version == 4
        assert recorder.last.url.path == "/project/proj-1/schema"

    def test_get_project_schema_empty(self):
        assert make_client(Recorder(body={"data": []})).get_project_schema("p") is None

    def test_get_project_schema_not_found(self):
        assert make_client(Recorder(404, text="missing")).get_project_schema("p") is None

    @pytest.mark.parametrize(
        "body",
        [
            {"data": [{"id": 1}]},
            {"data": "schema"},
            {"data": ["not-an-object"]},
            ["data"],
        ],
    )
    def test_get_project_schema_malformed_response(self, body):
        with pytest.raises(BasicInvalidResponseError, match="Unexpected response"):
            make_client(Recorder(body=body)).get_project_schema("p")

    def test_get_project_schema_invalid_remote_schema(self):
        recorder = Recorder(body={"data": [{"schema": {"project_id": "p", "tables": {}}}]})

        with pytest.raises(BasicInvalidResponseError, match="Remote schema is invalid"):
            make_client(recorder).get_project_schema("p")

    def test_push_sends_whole_schema(self):
        recorder = Recorder(body={"data": {}})
        schema = Schema.from_dict(schema_dict(version=2))

        make_client(recorder).push_project_schema("proj-1", schema)

        assert recorder.last.method == "POST"
        assert recorder.last.url.path == "/project/proj-1/schema"
        assert json.loads(recorder.last.content) == {"schema": schema_dict(version=2)}

    def test_validate_schema(self):
        recorder = Recorder(
            body={
                "valid": False,
                "errors": [{"message": "bad type", "instancePath": "/tables/t"}],
            }
        )

        result = make_client(recorder).validate_schema(Schema.empty("p"))

        assert not result.valid
        assert result.errors[0].message == "bad type"
        assert result.errors[0].instance_path == "/tables/t"
        assert recorder.last.url.path == "/utils/schema/verifyUpdateSchema"

    def test_compare_schema(self):
        recorder = Recorder(body={"valid": True})

        assert make_client(recorder).compare_schema(Schema.empty("p"))
        assert recorder.last.url.path == "/utils/schema/compareSchema"

    def test_compare_schema_mismatch(self):
        assert not make_client(Recorder(body={"valid": False})).compare_schema(
            Schema.empty("p")
        )


class TestReleases:
    def test_latest_release(self):
        recorder = Recorder(body={"info": {"version": "1.2.3"}})

        assert make_client(recorder).check_latest_release() == "1.2.3"
        assert recorder.last.url.host == "pypi.org"

    def test_latest_release_failure(self):
        with pytest.raises(BasicAPIError):
            make_client(Recorder(500)).check_latest_release()
